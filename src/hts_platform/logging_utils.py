from __future__ import annotations

import logging
import os
import re
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional
from pathlib import Path

import structlog
from pythonjsonlogger.json import JsonFormatter


# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')

_REDACTED = '[REDACTED]'


class PHIFilter(logging.Filter):
    """Filter to redact patient identifiers and screening answers from log records."""

    def __init__(self, scrub_values: bool = None):
        super().__init__()
        self.scrub_values = scrub_values if scrub_values is not None else bool(os.getenv('LOG_SCRUB_VALUES', '1') == '1')

        self.phi_patterns = [
            re.compile(r'\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\b'),  # OpenMRS UUIDs
            re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b'),  # Email
            re.compile(r'\+?\b254\d{9}\b'),  # Kenyan phone, international
            re.compile(r'\b0[17]\d{8}\b'),  # Kenyan phone, local
            re.compile(r'\b\d{4}-\d{2}-\d{2}\b'),  # ISO date YYYY-MM-DD
            re.compile(r'\b\d{1,2}/\d{1,2}/\d{2,4}\b'),  # DD/MM/YYYY and friends
            re.compile(r'\b\d{5}-\d{5}\b'),  # CCC numbers
            re.compile(r'\b\d{7,12}\b'),  # National ID / long numeric identifiers
        ]

        # Sensitive field names
        self.sensitive_fields = {
            'age', 'gender', 'sex', 'birthdate', 'dob', 'date_of_birth',
            'marital_status', 'population_type', 'disability', 'ever_tested',
            'self_tested', 'tb_screening', 'months_since_last_test',
            'patient', 'patient_uuid', 'patient_id', 'identifier', 'national_id',
            'first_name', 'last_name', 'full_name', 'name',
            'address', 'phone', 'phone_number', 'email',
        }

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact PHI from log records."""
        if self.scrub_values:
            record.msg = self._redact_phi_from_message(str(record.msg))

            if hasattr(record, 'args') and record.args:
                record.args = tuple(self._redact_phi_from_message(str(arg)) for arg in record.args)

        return True

    def _redact_phi_from_message(self, message: str) -> str:
        """Redact PHI patterns from message text."""
        redacted = message

        for pattern in self.phi_patterns:
            redacted = pattern.sub(_REDACTED, redacted)

        # key=value and key: value pairs
        for field in self.sensitive_fields:
            pattern = rf'\b{field}\s*[=:]\s*[^\s,\]}}]+'
            redacted = re.sub(pattern, f'{field}={_REDACTED}', redacted, flags=re.IGNORECASE)

        # Query strings carrying patient references, e.g. ?patient=<uuid>
        redacted = re.sub(r'(patient=)[^&\s]+', rf'\1{_REDACTED}', redacted, flags=re.IGNORECASE)

        return redacted


class PHIJsonFormatter(JsonFormatter):
    """JSON formatter that applies PHI filtering and request context."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.phi_filter = PHIFilter()

    def format(self, record: logging.LogRecord) -> str:
        self.phi_filter.filter(record)
        record.request_id = request_id_var.get('')
        return super().format(record)


def redact_pii(logger, name, event_dict):
    """Redact PII fields from log entries for clinical data compliance."""
    phi_filter = PHIFilter()

    for key in list(event_dict.keys()):
        if key.lower() in phi_filter.sensitive_fields:
            event_dict[key] = '***REDACTED***'
        elif isinstance(event_dict[key], str):
            event_dict[key] = phi_filter._redact_phi_from_message(event_dict[key])

    return event_dict


def add_context_vars(logger, name, event_dict):
    """Add context variables to event dict."""
    request_id = request_id_var.get('')
    if request_id:
        event_dict['request_id'] = request_id
    return event_dict


def configure_logging(config_path: Optional[str] = None, level: Optional[str] = None) -> None:
    """Configure stdlib logging from a YAML dictConfig and structlog on top of it."""
    import logging.config
    import yaml

    if config_path is None:
        config_path = os.getenv('LOG_CONFIG_PATH', 'configs/logging.yaml')
    log_level = (level or os.getenv('LOG_LEVEL') or 'INFO').upper()

    config_file = Path(config_path)
    if config_file.exists():
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f)
        logging.config.dictConfig(config)
        logging.getLogger().setLevel(log_level)
    else:
        root = logging.getLogger()
        root.setLevel(log_level)
        root.handlers.clear()
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(PHIJsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
        root.addHandler(handler)

    structlog.configure(
        processors=[
            add_context_vars,
            redact_pii,
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(log_level)),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **context: Dict[str, Any]):
    """Get a structured logger with optional context."""
    return structlog.get_logger(name, **context)


def set_request_id(request_id: str = None) -> str:
    """Set request ID for current context."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get current request ID."""
    return request_id_var.get('')
