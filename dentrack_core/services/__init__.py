# =============================================================================
# dentrack_core/services/__init__.py
# Service Layer Base Classes
# =============================================================================

from .base_service import BaseService, ServiceResult

__all__ = ["BaseService", "ServiceResult"]
