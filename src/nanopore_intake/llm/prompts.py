# ============================================================================
# src/nanopore_intake/llm/prompts.py
# ============================================================================
"""
Prompt Templates for form extraction.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from ..constants.field_definitions import FIELD_DEFINITIONS
from ..core.context.enums import DataType
from ..core.context.field_definition import FieldDefinition


@dataclass
class PromptTemplate:
    name: str
    template: str
    description: str
    required_fields: List[str] = field(default_factory=list)

    def format(self, **kwargs) -> str:
        missing = [f for f in self.required_fields if f not in kwargs]
        if missing:
            raise ValueError(f"Missing required fields: {missing}")
        return self.template.format(**kwargs)


FORM_EXTRACTION_TEMPLATE = PromptTemplate(
    name="nanopore_form_extraction",
    description="Extract intake form fields from document text as a JSON object",
    required_fields=["document_text", "field_schema"],
    template="""You are an expert at extracting information from Oxford Nanopore sequencing submission forms.
Analyze the following document text and extract the relevant form fields.

Document Text:
{document_text}

Return a JSON object with exactly these keys:

{field_schema}

Rules:
1. Only extract information that is clearly present in the text
2. Use null for fields that cannot be determined
3. Normalize values to the listed options where possible
4. Be conservative - if unsure, use null
5. Return valid JSON only

JSON Response:
""",
)


def _describe(definition: FieldDefinition) -> str:
    if definition.data_type == DataType.BOOLEAN:
        kind = "boolean"
    elif definition.options:
        kind = "|".join(definition.options)
    else:
        kind = "string"
    return f'  "{definition.field_name}": "{kind} - {definition.description.lower()}"'


def build_field_schema(definitions: Sequence[FieldDefinition] = FIELD_DEFINITIONS) -> str:
    lines = [_describe(d) for d in definitions]
    return "{\n" + ",\n".join(lines) + "\n}"


def create_form_extraction_prompt(document_text: str, max_chars: int = 12000) -> str:
    """Build the extraction prompt, truncating very long documents."""
    if len(document_text) > max_chars:
        document_text = document_text[:max_chars] + "\n[... truncated ...]"

    return FORM_EXTRACTION_TEMPLATE.format(
        document_text=document_text,
        field_schema=build_field_schema(),
    )
