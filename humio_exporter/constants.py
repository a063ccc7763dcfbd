# Ingest API paths, relative to the configured endpoint
INGEST_BASE_PATH = "api/v1/ingest/"
STRUCTURED_PATH = INGEST_BASE_PATH + "humio-structured"
UNSTRUCTURED_PATH = INGEST_BASE_PATH + "humio-unstructured"

# Headers derived from the configuration, always lower-case
CONTENT_TYPE_HEADER = "content-type"
AUTHORIZATION_HEADER = "authorization"
CONTENT_ENCODING_HEADER = "content-encoding"
USER_AGENT_HEADER = "user-agent"

CONTENT_TYPE = "application/json"
CONTENT_ENCODING = "gzip"
USER_AGENT = "humio-exporter-python"

# Timing constants (in seconds)
DEFAULT_TIMEOUT = 5.0
DEFAULT_RETRY_INITIAL_INTERVAL = 5.0
DEFAULT_RETRY_MAX_INTERVAL = 30.0
DEFAULT_RETRY_MAX_ELAPSED_TIME = 300.0  # 5 minutes

# Sending queue constants
DEFAULT_QUEUE_NUM_CONSUMERS = 10
DEFAULT_QUEUE_SIZE = 5000

REDACTED = "***"
