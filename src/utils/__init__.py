from .config import HarnessConfig, load_config
from .errors import (
    ConfigError,
    HarnessError,
    IdentifierPoolError,
    IdentifierSpaceExhaustedError,
    SubmissionError,
    TemplateNotFoundError,
)
