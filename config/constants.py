"""
Centralized constants for the manuscript editing pipeline.
All magic numbers live here.
"""

# ===========================================
# CHUNKING
# ===========================================
CHUNK_WORDS_PER_CHUNK = 180           # target words per reference chunk
CHUNK_HEADING_MAX_CHARS = 80
CHUNK_SUMMARY_WORDS = 30
CHUNK_QUOTE_MAX_CHARS = 240
CHUNK_UNTITLED_HEADING = "Untitled Segment"

# ===========================================
# RETRIEVAL
# ===========================================
RETRIEVAL_TOP_K = 5
RETRIEVAL_THRESHOLD = 0.7             # minimum cosine similarity kept
RETRIEVAL_NO_RESULTS = "No relevant reference material found."

STYLE_GUIDE_CORPORA = [
    "chicago-manual-grammar",
    "chicago-manual-punctuation",
]

KNOWN_GENRES = [
    "romance",
    "thriller",
    "scifi",
    "fantasy",
    "mystery",
    "literary",
]

GENRE_CORPUS_PREFIX = "genre-"
SAMPLE_QUERY = "comma usage in lists"
SAMPLE_QUERY_CORPUS = "chicago-manual-punctuation"

# ===========================================
# PROVIDERS
# ===========================================
PROVIDER_TIMEOUT_SECONDS = 120.0      # per completion / embedding call
STAGE_MAX_RETRIES = 2                 # retries around a whole stage
STAGE_RETRY_BASE_DELAY = 1.0          # seconds, doubled per attempt
STAGE_RETRY_MAX_DELAY = 30.0
INGEST_EMBED_DELAY = 0.1              # pause between embedding calls

# ===========================================
# PIPELINE
# ===========================================
REQUEST_ID_MIN_LENGTH = 6
MANUSCRIPT_MIN_LENGTH = 100           # characters

# stage -> weight used for overall confidence
STAGE_WEIGHTS = {
    1: 0.05,   # Intake
    2: 0.15,   # Grammar
    3: 0.10,   # Syntax
    4: 0.10,   # Tense
    5: 0.12,   # Structure
    6: 0.08,   # Character arcs
    7: 0.15,   # Style compliance
    8: 0.10,   # Continuity
    9: 0.08,   # Readability
    10: 0.07,  # QA
}
DEFAULT_STAGE_WEIGHT = 0.1

COMPLIANCE_STAGES = [1, 2, 3, 4, 7, 8, 9, 10]
LOW_CONFIDENCE_THRESHOLD = 0.85

# stage -> (confidence with no issues, floor, penalty per issue)
ISSUE_PENALIZED_CONFIDENCE = {
    2: (0.98, 0.70, 0.01),    # Grammar
    3: (0.95, 0.75, 0.015),   # Syntax
    4: (0.97, 0.80, 0.02),    # Tense
    5: (0.92, 0.70, 0.03),    # Structure
    7: (0.94, 0.75, 0.01),    # Style
    8: (0.96, 0.80, 0.02),    # Continuity
}

INTAKE_CONFIDENCE = 0.95
ARC_CONFIDENCE = 0.88
READABILITY_DEFAULT_CONFIDENCE = 0.85
QA_APPROVED_CONFIDENCE = 0.95
QA_REJECTED_CONFIDENCE = 0.75
UNPARSEABLE_RESPONSE_CONFIDENCE = 0.5  # cap when the model reply could not be decoded

# Stage parameters
STYLE_GUIDES = ["chicago", "mla", "apa", "genre-specific"]
READING_LEVELS = ["elementary", "middle-school", "high-school", "college", "professional"]
CONTINUITY_CHECK_TYPES = ["characters", "timeline", "locations", "terminology"]
DEFAULT_CONTINUITY_CHECKS = ["characters", "timeline"]
ANALYSIS_TYPES = ["pacing", "characterArcs", "plotStructure", "all"]

# Operation keys for request idempotency
OP_UPSERT = "upsert"
OP_COMPLIANCE = "compliance"
OP_STRUCTURAL = "structural-analysis"
OP_STYLE = "style-compliance"
OP_CONTINUITY = "continuity-check"
OP_READABILITY = "readability-optimization"
OP_QUALITY_AUDIT = "quality-audit"
OP_SNAPSHOT = "snapshot"

# ===========================================
# PROMPT LIMITS (characters of manuscript sent to the model)
# ===========================================
PROMPT_INTAKE_CHARS = 3000
PROMPT_LINE_EDIT_CHARS = 8000
PROMPT_STRUCTURE_CHARS = 10000
PROMPT_GROUNDING_QUERY_CHARS = 500

# ===========================================
# FILE HANDLING
# ===========================================
VECTOR_STORE_PATH = "data/vectors/references.json"
REFERENCES_DIR = "data/references"
DOCUMENTS_DB_PATH = "data/documents.db"
REFERENCE_EXTENSIONS = [".json", ".txt", ".md"]

# ===========================================
# LOGGING
# ===========================================
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE = 'logs/editorial.log'
LOG_MAX_SIZE_MB = 10
LOG_BACKUP_COUNT = 5
