"""
The document-saving tool offered to the model.

One JSON schema, rendered into each backend's declaration shape, plus the
pydantic model that validates the arguments the model sends back.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.shared.document_types import DOCUMENT_SEQUENCE, DocumentType

SAVE_DOCUMENT_TOOL = "save_specification_document"

SAVE_DOCUMENT_DESCRIPTION = (
    "Save software architecture specifications and documentation as markdown "
    "files to the user's project"
)

SAVE_DOCUMENT_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "filename": {
            "type": "string",
            "description": (
                "The filename with .md extension (e.g., 'technical-requirements.md', "
                "'api-specification.md', 'database-schema.md')"
            ),
        },
        "content": {
            "type": "string",
            "description": "The complete markdown document content with proper formatting",
        },
        "document_type": {
            "type": "string",
            "enum": [doc_type.value for doc_type in DOCUMENT_SEQUENCE],
            "description": "Type of specification document being created (one per interview phase)",
        },
        "description": {
            "type": "string",
            "description": "Brief summary of what this document covers",
        },
        "next_steps": {
            "type": "string",
            "description": (
                "What should be done next or what questions to ask the user for "
                "the following document/phase"
            ),
        },
        "skip_technical_summary": {
            "type": "boolean",
            "description": (
                "Set to true to skip mentioning what document was created (for "
                "non-technical users who don't need to know about PRDs, APIs, etc.)"
            ),
        },
    },
    "required": ["filename", "content", "document_type", "description"],
}


def openai_tools() -> list[dict[str, Any]]:
    """Tool declaration in Chat Completions function format."""
    return [
        {
            "type": "function",
            "function": {
                "name": SAVE_DOCUMENT_TOOL,
                "description": SAVE_DOCUMENT_DESCRIPTION,
                "parameters": SAVE_DOCUMENT_PARAMETERS,
            },
        }
    ]


def claude_tools() -> list[dict[str, Any]]:
    """Tool declaration in Anthropic Messages format."""
    return [
        {
            "name": SAVE_DOCUMENT_TOOL,
            "description": SAVE_DOCUMENT_DESCRIPTION,
            "input_schema": SAVE_DOCUMENT_PARAMETERS,
        }
    ]


class SaveDocumentArgs(BaseModel):
    """Validated arguments of a save_specification_document call."""

    filename: str = Field(min_length=1)
    content: str = Field(min_length=1)
    document_type: DocumentType
    description: str
    next_steps: str | None = None
    skip_technical_summary: bool = False

    @field_validator("document_type", mode="before")
    @classmethod
    def normalize_document_type(cls, v: Any) -> DocumentType:
        """Accept every known spelling of a document type."""
        return DocumentType.parse(v)

    @field_validator("skip_technical_summary", mode="before")
    @classmethod
    def default_skip(cls, v: Any) -> bool:
        return bool(v) if v is not None else False
