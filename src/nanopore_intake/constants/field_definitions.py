# ============================================================================
# src/nanopore_intake/constants/field_definitions.py
# ============================================================================
"""
Canonical Intake Form Fields
- The 19 fields of the nanopore sequencing submission form
- Aliases used by the alias mapper
- Value validators and SELECT options

Loaded once at import; never mutated at runtime.
"""

import re
from typing import Dict, List, Optional

from ..core.context.enums import DataType
from ..core.context.field_definition import FieldDefinition


EMAIL_PATTERN = re.compile(r"^[\w%+.\-]+@[\dA-Za-z.\-]+\.[A-Za-z]{2,}$")

# Both micro sign (U+00B5) and Greek mu (U+03BC) turn up in PDF text
CONCENTRATION_PATTERN = re.compile(
    r"^\d+(?:[.,]\d+)?\s*(?:[nµμup]g\s*/\s*[µμu]l|[nµμu]g\s*/\s*ml|mg\s*/\s*ml|nm|[µμu]m)?$",
    re.IGNORECASE,
)
VOLUME_PATTERN = re.compile(r"^\d+(?:[.,]\d+)?\s*(?:[µμu]l|ml|l)?$", re.IGNORECASE)

BOOLEAN_TRUE_TOKENS = ("true", "yes", "y", "1", "required", "needed")
BOOLEAN_FALSE_TOKENS = ("false", "no", "n", "0", "not required", "not needed")
BOOLEAN_TOKENS = ("true", "false", "yes", "no", "1", "0")


FIELD_DEFINITIONS: List[FieldDefinition] = [
    FieldDefinition(
        field_name="sampleName",
        aliases=("sample name", "sample id", "sample identifier", "sample code", "specimen id", "name"),
        required=True,
        examples=("SAMPLE001", "DNA_Sample_1", "RNA-001"),
        description="Unique sample identifier",
    ),
    FieldDefinition(
        field_name="submitterName",
        aliases=("submitter", "submitter name", "submitted by", "contact name", "researcher",
                 "principal investigator", "requester"),
        required=True,
        examples=("John Doe", "Dr. Smith", "Jane Wilson"),
        description="Person submitting the sample",
    ),
    FieldDefinition(
        field_name="submitterEmail",
        aliases=("email", "contact email", "e-mail", "email address", "contact"),
        data_type=DataType.EMAIL,
        required=True,
        validator=EMAIL_PATTERN,
        examples=("john.doe@university.edu", "researcher@lab.org"),
        description="Contact email of the submitter",
    ),
    FieldDefinition(
        field_name="labName",
        aliases=("lab", "lab name", "laboratory", "department", "institution", "affiliation"),
        examples=("Smith Lab", "Genomics Core Facility"),
        description="Laboratory or department name",
    ),
    FieldDefinition(
        field_name="projectName",
        aliases=("project", "project name", "project title", "study", "study name", "grant"),
        examples=("Soil Metagenome Survey", "PRJ-2024-17"),
        description="Project or study name",
    ),
    FieldDefinition(
        field_name="sequencingType",
        aliases=("sequencing type", "type of sequencing", "seq type", "sequencing"),
        data_type=DataType.SELECT,
        options=("DNA", "RNA", "cDNA", "Other"),
        examples=("DNA", "RNA"),
        description="Type of sequencing",
    ),
    FieldDefinition(
        field_name="sampleType",
        aliases=("sample type", "specimen type", "material type", "material"),
        data_type=DataType.SELECT,
        options=("Genomic DNA", "Plasmid", "PCR Product", "Total RNA", "Other"),
        examples=("Genomic DNA", "Plasmid"),
        description="Kind of sample material",
    ),
    FieldDefinition(
        field_name="libraryType",
        aliases=("library type", "library prep", "library preparation", "prep kit", "kit"),
        data_type=DataType.SELECT,
        options=("Ligation", "Rapid", "PCR-free", "Other"),
        examples=("Ligation", "Rapid"),
        description="Library preparation method",
    ),
    FieldDefinition(
        field_name="flowCellType",
        aliases=("flow cell", "flow cell type", "flowcell", "device", "platform", "instrument"),
        data_type=DataType.SELECT,
        options=("MinION", "GridION", "PromethION", "Flongle", "Other"),
        examples=("MinION", "PromethION"),
        description="Flow cell or device",
    ),
    FieldDefinition(
        field_name="concentration",
        aliases=("conc", "concentration", "sample concentration", "ng/ul", "amount"),
        validator=CONCENTRATION_PATTERN,
        examples=("50 ng/μL", "25.5", "100 ng/ul"),
        description="Sample concentration with units",
    ),
    FieldDefinition(
        field_name="volume",
        aliases=("vol", "volume", "sample volume", "total volume"),
        validator=VOLUME_PATTERN,
        examples=("20 μL", "50", "25 ul"),
        description="Sample volume with units",
    ),
    FieldDefinition(
        field_name="purity",
        aliases=("purity", "a260/a280", "260/280", "a260/230", "purity ratio"),
        examples=("1.85", "1.9"),
        description="Purity measurements",
    ),
    FieldDefinition(
        field_name="fragmentSize",
        aliases=("fragment size", "fragment length", "insert size", "read length", "size"),
        examples=("10 kb", "500 bp"),
        description="Fragment size information",
    ),
    FieldDefinition(
        field_name="priority",
        aliases=("priority", "urgency", "turnaround", "turnaround time", "processing priority"),
        data_type=DataType.SELECT,
        options=("Standard", "High", "Rush", "Urgent"),
        examples=("Standard", "High", "Rush", "Urgent"),
        description="Processing priority",
    ),
    FieldDefinition(
        field_name="basecalling",
        aliases=("basecalling", "base calling", "basecalling model", "basecaller"),
        data_type=DataType.SELECT,
        options=("Standard", "High Accuracy", "Fast", "Super Accuracy"),
        examples=("High Accuracy", "Fast"),
        description="Basecalling method",
    ),
    FieldDefinition(
        field_name="demultiplexing",
        aliases=("demultiplexing", "demultiplex", "demux", "barcoding"),
        data_type=DataType.BOOLEAN,
        examples=("yes", "no"),
        description="Whether demultiplexing is needed",
    ),
    FieldDefinition(
        field_name="referenceGenome",
        aliases=("reference genome", "reference", "ref genome", "genome build", "assembly"),
        examples=("GRCh38", "hg19"),
        description="Reference genome if specified",
    ),
    FieldDefinition(
        field_name="analysisType",
        aliases=("analysis type", "analysis", "type of analysis", "analysis requested", "bioinformatics"),
        examples=("Variant calling", "De novo assembly"),
        description="Type of analysis requested",
    ),
    FieldDefinition(
        field_name="dataDelivery",
        aliases=("data delivery", "delivery", "delivery format", "data format", "output format"),
        data_type=DataType.SELECT,
        options=("Raw", "Processed", "Both"),
        examples=("Raw", "FASTQ", "Both"),
        description="Data delivery preference",
    ),
]


def _index_by_name(definitions: List[FieldDefinition]) -> Dict[str, FieldDefinition]:
    index: Dict[str, FieldDefinition] = {}
    for definition in definitions:
        if definition.field_name in index:
            raise ValueError(f"Duplicate field definition: {definition.field_name}")
        index[definition.field_name] = definition
    return index


FIELD_DEFINITIONS_BY_NAME: Dict[str, FieldDefinition] = _index_by_name(FIELD_DEFINITIONS)

FIELD_NAMES: List[str] = [d.field_name for d in FIELD_DEFINITIONS]

REQUIRED_FIELDS: List[str] = [d.field_name for d in FIELD_DEFINITIONS if d.required]

TOTAL_FIELD_COUNT = len(FIELD_DEFINITIONS)


def get_field_definition(field_name: str) -> Optional[FieldDefinition]:
    return FIELD_DEFINITIONS_BY_NAME.get(field_name)


def coerce_boolean(value) -> Optional[bool]:
    """Interpret a yes/no style answer; None when it is not one."""
    if isinstance(value, bool):
        return value
    if value is None:
        return None

    text = " ".join(str(value).strip().lower().split())
    if text in BOOLEAN_FALSE_TOKENS or text.startswith(("no ", "without ", "not ")):
        return False
    if text in BOOLEAN_TRUE_TOKENS or text.endswith((" required", " needed", " requested")):
        return True
    if text in ("multiplexed", "barcoded"):
        return True
    return None
