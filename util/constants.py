class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    PARSE_DOCUMENT = V1 + "/parse-document"
    EXPLAIN_CLAUSES = V1 + "/explain-clauses"
    ANALYZE_DOCUMENT = V1 + "/analyze-document"


MIB = 1024 * 1024

SUPPORTED_EXTENSIONS = (
    "txt",
    "pdf",
    "docx",
    "jpg",
    "jpeg",
    "png",
    "gif",
    "bmp",
    "tiff",
    "tif",
    "webp",
)
