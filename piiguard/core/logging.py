import logging
import logging.config
import re
from functools import lru_cache

_ASSIGNMENT_PATTERN = re.compile(r"(?i)\b((?:raw_value|text)\s*[=:]\s*)([^,\s]+)")


@lru_cache(maxsize=1)
def _redaction_patterns() -> tuple[re.Pattern[str], ...]:
    # Same regexes the detector uses for these types.
    from piiguard.core.constants import PIIType
    from piiguard.pii.patterns import builtin_patterns

    redacted_types = {
        PIIType.EMAIL,
        PIIType.PHONE,
        PIIType.SSN,
        PIIType.CREDIT_CARD,
        PIIType.IP_ADDRESS,
    }
    return tuple(
        re.compile(pattern.matcher)
        for pattern in builtin_patterns()
        if pattern.type in redacted_types and isinstance(pattern.matcher, str)
    )


class PIISafeFilter(logging.Filter):
    def _sanitize(self, value: object) -> object:
        if not isinstance(value, str):
            return value

        redacted = _ASSIGNMENT_PATTERN.sub(r"\1[REDACTED]", value)
        for pattern in _redaction_patterns():
            redacted = pattern.sub("[REDACTED]", redacted)
        return redacted

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._sanitize(record.msg)

        if isinstance(record.args, tuple):
            record.args = tuple(self._sanitize(item) for item in record.args)
        elif isinstance(record.args, dict):
            record.args = {key: self._sanitize(value) for key, value in record.args.items()}

        return True


def setup_logging() -> None:
    from piiguard.core.settings import get_settings

    settings = get_settings()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "pii_safe": {
                    "()": "piiguard.core.logging.PIISafeFilter",
                }
            },
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["pii_safe"],
                }
            },
            "loggers": {
                "": {
                    "handlers": ["console"],
                    "level": settings.log_level.upper(),
                },
                "presidio-analyzer": {
                    "handlers": ["console"],
                    "level": "WARNING",
                    "propagate": False,
                },
            },
        }
    )
