"""Request Admission Security Domain

CSRF origin validation, client address resolution, the DoS gate and the
password strength policy.
"""

from .anomaly_detection import AnomalyDetector
from .client_ip import get_client_ip
from .csrf import STATE_CHANGING_METHODS, CSRFDecision, CSRFValidator, referer_origin
from .dos_protection import (
    ActiveRequestRecord,
    AdmissionDecision,
    DoSGate,
    DoSProtectionConfig,
    RequestSnapshot,
)
from .password_policy import PasswordStrength, PasswordValidationResult, validate_password

__all__ = [
    "ActiveRequestRecord",
    "AdmissionDecision",
    "AnomalyDetector",
    "CSRFDecision",
    "CSRFValidator",
    "DoSGate",
    "DoSProtectionConfig",
    "PasswordStrength",
    "PasswordValidationResult",
    "RequestSnapshot",
    "STATE_CHANGING_METHODS",
    "get_client_ip",
    "referer_origin",
    "validate_password",
]
