"""Default configurations for codebase-index."""

# Workspace-relative directory holding all persisted state
APP_DIR_NAME = ".codebase-index"
INDEX_DIR_NAME = "index"
TABLE_NAME = "code_chunks"

# Line-based chunking
DEFAULT_CHUNK_SIZE = 80  # lines per block chunk
DEFAULT_CHUNK_OVERLAP = 10  # lines shared by consecutive block chunks

# Files larger than this are not indexed (generated bundles, minified code)
DEFAULT_MAX_FILE_SIZE = 1024 * 1024

# Texts per embedding request for batch-capable providers
DEFAULT_EMBED_BATCH_SIZE = 32

# Files grouped into one result message (whole files only)
DEFAULT_FILES_PER_BATCH = 10

# Rows per file assumed when approximating the file count from the row count
ASSUMED_CHUNKS_PER_FILE = 5

# Probe text used by connection tests
CONNECTION_PROBE_TEXT = "test connection"

# Default file extensions to index
DEFAULT_FILE_EXTENSIONS = [
    ".py",
    ".js",
    ".ts",
    ".jsx",
    ".tsx",
    ".mjs",
    ".cjs",
    ".vue",
    ".svelte",
    ".java",
    ".kt",
    ".scala",
    ".go",
    ".rs",
    ".c",
    ".h",
    ".cpp",
    ".hpp",
    ".cc",
    ".cs",
    ".php",
    ".rb",
    ".swift",
    ".dart",
    ".lua",
    ".sh",
    ".bash",
    ".zsh",
    ".sql",
    ".html",
    ".css",
    ".scss",
    ".json",
    ".yaml",
    ".yml",
    ".toml",
    ".md",
]

# Directories to ignore during indexing (dot-directories are always ignored)
DEFAULT_IGNORED_DIRS = [
    "node_modules",
    "__pycache__",
    "venv",
    "env",
    "dist",
    "build",
    "out",
    "target",
    "coverage",
    "vendor",
    "bower_components",
    "site-packages",
]

# Default embedding endpoints by provider
EMBEDDING_ENDPOINTS = {
    "jina": "https://api.jina.ai/v1/embeddings",
    "voyage": "https://api.voyageai.com/v1/embeddings",
    "openai": "https://api.openai.com/v1/embeddings",
    "cohere": "https://api.cohere.ai/v1/embed",
    "huggingface": "https://api-inference.huggingface.co/pipeline/feature-extraction",
    "ollama": "http://localhost:11434/api/embeddings",
}

# Default embedding models by provider
DEFAULT_EMBEDDING_MODELS = {
    "jina": "jina-embeddings-v2-base-code",
    "voyage": "voyage-code-2",
    "openai": "text-embedding-3-small",
    "cohere": "embed-english-v3.0",
    "huggingface": "sentence-transformers/all-MiniLM-L6-v2",
    "ollama": "nomic-embed-text",
}

DEFAULT_EMBEDDING_PROVIDER = "jina"
DEFAULT_EMBEDDING_TIMEOUT = 30.0  # seconds per request
DEFAULT_EMBEDDING_MAX_RETRIES = 2
RETRY_BASE_DELAY = 0.5  # seconds, doubled on every attempt
