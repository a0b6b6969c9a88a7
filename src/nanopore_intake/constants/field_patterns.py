# ============================================================================
# src/nanopore_intake/constants/field_patterns.py
# ============================================================================
"""
Regex Tables for the Pattern Extractor

Four tiers per field, tried in order and all evaluated:
- primary:    explicit labels ("Sample Name: ...")
- secondary:  alternate phrasings
- contextual: inferred from surrounding words
- fuzzy:      bare-value heuristics

Every pattern has exactly one capture group holding the value. Patterns are
compiled case-insensitively; `(?-i:...)` marks the parts that rely on
capitalisation.
"""

from typing import Dict, List

TIER_ORDER = ("primary", "secondary", "contextual", "fuzzy")

TIER_CONFIDENCE = {
    "primary": 0.95,
    "secondary": 0.85,
    "contextual": 0.75,
    "fuzzy": 0.65,
}

# Value ends at the end of its line (or at a ; / | separator)
_EOL = r"(?=[ \t]*(?:\r?\n|$|[;|]))"
_SEP = r"[ \t]*[:=#]?[ \t]*"
_COLON = r"[ \t]*:[ \t]*"

_ID = r"[A-Za-z0-9_.\-#]+"
_PERSON = (
    r"(?!(?:e-?mail|phone|name|lab|department)\b)"
    r"[A-Za-z][A-Za-z ,.\-']*?"
)
_PERSON_END = (
    r"(?=[ \t]*(?:\r?\n|$|[;|(@]|\b(?:e-?mail|phone|tel|lab|department)\b))"
)
_TEXT = r"[A-Za-z0-9][A-Za-z0-9 &(),.'/_\-]*?"
_WORDS = r"[A-Za-z][A-Za-z0-9 .\-/]*?"
_EMAIL = r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}"
_NUM = r"\d+(?:[.,]\d+)?"
_CONC_UNIT = r"(?:(?:[nµμup]g|mg)[ \t]*/[ \t]*(?:[µμu]l|ml)|nM|[µμu]M)(?![A-Za-z])"
_VOL_UNIT = r"(?:[µμu]l|ml|l)(?![A-Za-z/])"
_SIZE = r"\d+(?:[.,]\d+)?[ \t]*(?:kbp|mbp|bp|kb|mb)\b"
_PRIORITY = r"standard|normal|routine|high|medium|low|rush|urgent|stat|emergency|asap|expedited"
_BASECALL = r"super[ \t\-]*accura(?:cy|te)|high[ \t\-]*accura(?:cy|te)|hac|sup|fast|standard"
_DEVICE = r"MinION|GridION|PromethION|Flongle"


FIELD_PATTERNS: Dict[str, Dict[str, List[str]]] = {
    "sampleName": {
        "primary": [
            rf"\bsample[ \t]*(?:name|id|identifier|code|number)\b{_SEP}({_ID})",
        ],
        "secondary": [
            rf"\b(?:specimen|aliquot|tube[ \t]*id|vial[ \t]*id|barcode)\b{_SEP}({_ID})",
            rf"\bsample[ \t]*label\b{_SEP}({_ID})",
            rf"\bname[ \t]+of[ \t]+(?:the[ \t]+)?sample\b{_SEP}({_ID})",
            (
                r"\bsample\b(?![ \t]*(?:name|id|identifier|code|number|type|label|size|volume|"
                r"concentration|submission|information|details|form|sheet|prep|quality)\b)"
                rf"{_COLON}({_ID})"
            ),
        ],
        "contextual": [
            rf"\b({_ID})[ \t]+(?:is|was|represents)[ \t]+(?:the[ \t]+)?sample\b",
            rf"\bprocessing[ \t]+sample\b{_SEP}({_ID})",
        ],
        "fuzzy": [
            (
                r"\b(?:sample|specimen|aliquot)s?\b[^\n]{0,40}?"
                r"\b((?=[A-Za-z0-9_.\-#]*\d)(?=[A-Za-z0-9_.\-#]*[A-Za-z])[A-Za-z0-9][A-Za-z0-9_.\-#]{2,19})\b"
            ),
        ],
    },
    "submitterName": {
        "primary": [
            (
                r"\b(?:submitter(?:[ \t]+name)?|submitted[ \t]+by|contact[ \t]+person|"
                rf"principal[ \t]+investigator|pi)\b{_SEP}({_PERSON}){_PERSON_END}"
            ),
        ],
        "secondary": [
            rf"\b(?:investigator|researcher|scientist|requester|requestor|applicant|contact[ \t]+name)\b{_SEP}({_PERSON}){_PERSON_END}",
            rf"(?m)^[ \t]*(?:full[ \t]+)?name{_COLON}({_PERSON}){_PERSON_END}",
            rf"\b((?:dr|prof|professor)\.?[ \t]+{_PERSON}){_PERSON_END}",
        ],
        "contextual": [
            rf"\b(?:prepared|completed|signed|requested)[ \t]+by\b{_SEP}({_PERSON}){_PERSON_END}",
            rf"\bcontact{_COLON}({_PERSON}){_PERSON_END}",
        ],
        "fuzzy": [
            (
                r"\b(?:submit\w*|contact|investigator)\b[^\n]*\n[ \t]*"
                r"((?-i:[A-Z][a-z]+(?:[ \t]+[A-Z]\.)?[ \t]+[A-Z][a-z'\-]+))[ \t]*(?=\r?\n|$)"
            ),
        ],
    },
    "submitterEmail": {
        "primary": [
            rf"\b(?:e-?mail(?:[ \t]+address)?|electronic[ \t]+mail|contact[ \t]+e-?mail)\b{_SEP}({_EMAIL})",
        ],
        "secondary": [
            rf"(?<![\w.%+\-])({_EMAIL})",
        ],
        "contextual": [
            rf"\b(?:correspondence|contact|reach|reply)\b[^\n@]{{0,30}}?(?<![\w.%+\-])({_EMAIL})",
        ],
        "fuzzy": [
            r"(?<![\w.%+\-])([A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(?:\.[A-Za-z0-9\-]+)+)\b",
        ],
    },
    "labName": {
        "primary": [
            rf"\b(?:lab(?:oratory)?(?:[ \t]+name)?|dept|department)\b{_COLON}({_TEXT}){_EOL}",
        ],
        "secondary": [
            rf"\b(?:institution|university|facility|affiliation|organi[sz]ation|institute)\b{_COLON}({_TEXT}){_EOL}",
        ],
        "contextual": [
            r"\b(?:at|from)[ \t]+(?:the[ \t]+)?((?-i:[A-Z][A-Za-z&'\-]*(?:[ \t]+[A-Z][A-Za-z&'\-]*){0,4})[ \t]+(?:lab|laboratory))\b",
        ],
        "fuzzy": [
            r"(?m)^[ \t]*((?-i:[A-Z][A-Za-z&'\-]*(?:[ \t]+[A-Z][A-Za-z&'\-]*){0,4})[ \t]+(?:lab|laboratory))[ \t]*$",
        ],
    },
    "projectName": {
        "primary": [
            rf"\b(?:project(?:[ \t]+(?:name|title|id))?|study(?:[ \t]+name)?|name[ \t]+of[ \t]+project)\b{_COLON}({_TEXT}){_EOL}",
        ],
        "secondary": [
            rf"\b(?:grant(?:[ \t]+(?:number|id))?|funding|award|research[ \t]+title)\b{_COLON}({_TEXT}){_EOL}",
        ],
        "contextual": [
            r"\b(?:for|regarding)[ \t]+(?:the[ \t]+)?([A-Za-z0-9][A-Za-z0-9 \-]{2,60}?)[ \t]+(?:project|study)\b",
        ],
        "fuzzy": [
            r"\b((?-i:[A-Z][A-Za-z0-9\-]*(?:[ \t]+[A-Z][A-Za-z0-9\-]*){0,5}))[ \t]+(?:project|study)\b",
        ],
    },
    "sequencingType": {
        "primary": [
            rf"\b(?:sequencing[ \t]+type|type[ \t]+of[ \t]+sequencing|seq[ \t]+type)\b{_SEP}({_WORDS}){_EOL}",
        ],
        "secondary": [
            r"\b(cDNA|DNA|RNA)[ \t]+sequencing\b",
            r"\b(whole[ \t]+genome|whole[ \t]+transcriptome|metagenomic|amplicon|direct[ \t]+RNA)\b",
        ],
        "contextual": [
            r"\b(?:using|with|via)[ \t]+((?:long|short)[ \t]+read)[ \t]+sequencing\b",
        ],
        "fuzzy": [
            r"\b(cDNA|DNA|RNA)\b",
        ],
    },
    "sampleType": {
        "primary": [
            rf"\bsample[ \t]+type\b{_SEP}({_WORDS}){_EOL}",
        ],
        "secondary": [
            rf"\b(?:specimen|material|nucleic[ \t]+acid)[ \t]+type\b{_SEP}({_WORDS}){_EOL}",
        ],
        "contextual": [
            (
                r"\b(genomic[ \t]+DNA|gDNA|total[ \t]+RNA|mRNA|plasmid(?:[ \t]+DNA)?|PCR[ \t]+products?|"
                r"amplicons?|cell-free[ \t]+DNA|cfDNA|HMW[ \t]+DNA|high[ \t]+molecular[ \t]+weight[ \t]+DNA)\b"
            ),
        ],
        "fuzzy": [
            r"\b(DNA|RNA)[ \t]+(?:samples?|extracts?)\b",
        ],
    },
    "libraryType": {
        "primary": [
            (
                r"\b(?:library[ \t]+(?:type|prep(?:aration)?(?:[ \t]+(?:kit|method))?)|prep[ \t]+kit)\b"
                rf"{_SEP}({_WORDS}){_EOL}"
            ),
        ],
        "secondary": [
            rf"\b(?:kit|sequencing[ \t]+kit)\b{_COLON}([A-Za-z0-9][A-Za-z0-9 .\-]*?){_EOL}",
        ],
        "contextual": [
            (
                r"\b(ligation|rapid|pcr-free|native[ \t]+barcoding|rapid[ \t]+barcoding|pcr[ \t]+barcoding|"
                r"direct[ \t]+RNA|cDNA-PCR)[ \t]+(?:library|prep|kit|sequencing[ \t]+kit)\b"
            ),
        ],
        "fuzzy": [
            r"\b(ligation|rapid|pcr-free)\b",
        ],
    },
    "flowCellType": {
        "primary": [
            rf"\b(?:flow[ \t]*cell(?:[ \t]+type)?|device|instrument|platform)\b{_SEP}([A-Za-z0-9][A-Za-z0-9 .\-]*?){_EOL}",
        ],
        "secondary": [
            rf"\b({_DEVICE})\b",
            r"\b((?:FLO|FLG)-[A-Z0-9]+)\b",
        ],
        "contextual": [
            rf"\b(?:on|using|with)[ \t]+(?:an?[ \t]+)?({_DEVICE})\b",
        ],
        "fuzzy": [
            r"\b(R9\.4(?:\.1)?|R10(?:\.4(?:\.1)?)?)(?![\w.])",
        ],
    },
    "concentration": {
        "primary": [
            rf"\b(?:concentration|conc)\b\.?[ \t]*(?:\([^)\n]*\))?{_SEP}({_NUM}[ \t]*{_CONC_UNIT})",
        ],
        "secondary": [
            rf"\b(?:yield|quantity|qubit|dna[ \t]+amount|amount)\b[ \t]*(?:\([^)\n]*\))?{_SEP}({_NUM}[ \t]*{_CONC_UNIT})",
        ],
        "contextual": [
            rf"(?:\b(?:at|approximately|approx|around|about)\b\.?[ \t]*|~[ \t]*)({_NUM}[ \t]*{_CONC_UNIT})",
        ],
        "fuzzy": [
            rf"(?<![\w.])({_NUM}[ \t]*{_CONC_UNIT})",
        ],
    },
    "volume": {
        "primary": [
            rf"\b(?:volume|vol)\b\.?[ \t]*(?:\([^)\n]*\))?{_SEP}({_NUM}[ \t]*{_VOL_UNIT})",
        ],
        "secondary": [
            rf"\b(?:total[ \t]+volume|aliquot|quantity)\b{_SEP}({_NUM}[ \t]*{_VOL_UNIT})",
        ],
        "contextual": [
            rf"\b(?:in|of|approximately|around|about)[ \t]+({_NUM}[ \t]*{_VOL_UNIT})",
        ],
        "fuzzy": [
            rf"(?<![\w./])({_NUM}[ \t]*{_VOL_UNIT})",
        ],
    },
    "purity": {
        "primary": [
            rf"\b(?:a260[ \t]*/[ \t]*a280|260[ \t]*/[ \t]*280|purity)\b[ \t]*(?:ratio)?{_SEP}(\d+(?:\.\d+)?)",
        ],
        "secondary": [
            rf"\b(?:a260[ \t]*/[ \t]*a230|260[ \t]*/[ \t]*230)\b{_SEP}(\d+(?:\.\d+)?)",
            r"\b(?:od|ratio|qc)\b[ \t]*:[ \t]*(\d+(?:\.\d+)?)",
        ],
        "contextual": [
            r"\b(?:nanodrop|absorbance|spectrophotometr\w*)\b[^\n\d]{0,20}(\d+(?:\.\d+)?)",
        ],
        "fuzzy": [
            r"\b([12]\.\d{1,2})\b(?=[^\n]*\b(?:purity|ratio|a260|260)\b)",
        ],
    },
    "fragmentSize": {
        "primary": [
            (
                r"\b(?:fragment[ \t]+(?:size|length)|insert[ \t]+size|read[ \t]+length|average[ \t]+size|n50)\b"
                rf"{_SEP}~?[ \t]*({_SIZE})"
            ),
        ],
        "secondary": [
            rf"\bsize\b{_SEP}({_SIZE})",
        ],
        "contextual": [
            rf"(?:\b(?:approximately|around|about|average|mean)\b[ \t]*|~[ \t]*)({_SIZE})",
        ],
        "fuzzy": [
            rf"(?<![\w.])({_SIZE})",
        ],
    },
    "priority": {
        "primary": [
            (
                r"\b(?:priority|urgency|turnaround(?:[ \t]+time)?|processing[ \t]+priority)\b[ \t]*(?:level)?"
                rf"{_SEP}({_PRIORITY})\b"
            ),
        ],
        "secondary": [
            rf"\b({_PRIORITY})[ \t]+priority\b",
        ],
        "contextual": [
            rf"\b(?:need|require|request)(?:s|ed)?[ \t]+({_PRIORITY})\b",
        ],
        "fuzzy": [
            r"\b(rush|urgent|asap|expedited)\b",
        ],
    },
    "basecalling": {
        "primary": [
            rf"\bbase[ \t\-]*calling(?:[ \t]+(?:model|mode|method))?\b{_SEP}({_BASECALL})\b",
        ],
        "secondary": [
            rf"\bbasecaller\b{_SEP}([A-Za-z][A-Za-z0-9 .\-]*?){_EOL}",
        ],
        "contextual": [
            rf"\b({_BASECALL})\b[ \t]+(?:mode[ \t]+)?base[ \t\-]*calling\b",
        ],
        "fuzzy": [
            r"\b(high[ \t]+accuracy|super[ \t]+accuracy)\b",
        ],
    },
    "demultiplexing": {
        "primary": [
            (
                r"\b(?:demultiplex(?:ing|ed)?|demux)\b[ \t]*(?:required|needed)?[ \t]*[:?=]?[ \t]*"
                r"(yes|no|true|false|not[ \t]+required|required|y|n)\b"
            ),
        ],
        "secondary": [
            r"\bbarcod(?:ing|ed|es)?\b[ \t]*(?:required|used)?[ \t]*:[ \t]*(yes|no|true|false|y|n)\b",
        ],
        "contextual": [
            r"\b((?:no|without)[ \t]+demultiplexing|demultiplexing[ \t]+(?:is[ \t]+)?(?:required|needed|requested))\b",
        ],
        "fuzzy": [
            r"\b(multiplexed|barcoded)[ \t]+(?:samples?|library|run)\b",
        ],
    },
    "referenceGenome": {
        "primary": [
            (
                r"\b(?:reference[ \t]+(?:genome|sequence|assembly)|ref[ \t]+genome|genome[ \t]+build|reference)\b"
                rf"{_COLON}([A-Za-z0-9][A-Za-z0-9 .\-_/()]*?){_EOL}"
            ),
        ],
        "secondary": [
            r"\b(GRCh3[78](?:\.p\d+)?|hg19|hg38|T2T-CHM13(?:v\d(?:\.\d)?)?|CHM13|GRCm3[89]|mm10|mm39)\b",
        ],
        "contextual": [
            r"\b(?:align(?:ed)?|map(?:ped)?)[ \t]+(?:to|against)[ \t]+(?:the[ \t]+)?([A-Za-z0-9][A-Za-z0-9.\-_]*)",
        ],
        "fuzzy": [
            r"\b((?-i:[A-Z][a-z]+[ \t]+[a-z]+))[ \t]+(?:genome|reference)\b",
        ],
    },
    "analysisType": {
        "primary": [
            (
                r"\b(?:analysis[ \t]+(?:type|requested|required)|type[ \t]+of[ \t]+analysis|"
                rf"bioinformatics(?:[ \t]+analysis)?|analysis)\b{_COLON}({_TEXT}){_EOL}"
            ),
        ],
        "secondary": [
            rf"\b(?:downstream[ \t]+analysis|application)\b{_COLON}({_TEXT}){_EOL}",
        ],
        "contextual": [
            (
                r"\b(variant[ \t]+calling|de[ \t]+novo[ \t]+assembly|genome[ \t]+assembly|"
                r"methylation(?:[ \t]+(?:calling|analysis))?|structural[ \t]+variant(?:[ \t]+(?:calling|detection))?|"
                r"transcript(?:ome)?[ \t]+(?:quantification|analysis)|metagenomic[ \t]+classification|"
                r"taxonomic[ \t]+(?:classification|profiling)|isoform[ \t]+(?:detection|analysis))\b"
            ),
        ],
        "fuzzy": [
            r"\b(assembly|alignment|methylation|phasing)[ \t]+(?:only|requested|required)\b",
        ],
    },
    "dataDelivery": {
        "primary": [
            (
                r"\b(?:data[ \t]+delivery|delivery[ \t]+(?:format|method|preference)|data[ \t]+format|output[ \t]+format)\b"
                rf"{_SEP}({_TEXT}){_EOL}"
            ),
        ],
        "secondary": [
            rf"\b(?:deliverables?|output[ \t]+files?)\b{_COLON}({_TEXT}){_EOL}",
        ],
        "contextual": [
            r"\b(?:deliver|provide|send)[ \t]+(?:the[ \t]+)?(raw|processed|both|fastq|bam|pod5|fast5)\b",
        ],
        "fuzzy": [
            r"\b(FASTQ|POD5|FAST5|BAM)[ \t]+files?\b",
        ],
    },
}
