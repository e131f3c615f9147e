"""bulkset — typed, single-statement bulk UPDATEs from runtime field mappings."""

from bulkset.config.logging import configure_from_settings, configure_logging
from bulkset.config.settings import (
    BulkSetSettings,
    build_async_backend,
    build_backend,
    build_service,
)
from bulkset.core.capability import CapabilityCache, detect_capability
from bulkset.core.composer import ComposedExpression, ExpressionComposer
from bulkset.core.dispatcher import cancel_after
from bulkset.core.plan import SetterPlanBuilder, build_plan
from bulkset.core.updater import BulkUpdater
from bulkset.domain.coercion import ValueCoercer, coerce_value
from bulkset.domain.types import (
    Assignment,
    CapabilityMode,
    FieldSpec,
    FieldUpdateRequest,
    SetterPlan,
)
from bulkset.errors import (
    AmbiguousCapability,
    BulkSetError,
    CapabilityError,
    CoercionError,
    ConversionFailed,
    EmptyUpdate,
    FieldNotFound,
    InvalidQuery,
    NoCompatibleShape,
    NullNotAllowed,
    SchemaError,
    UnsupportedFieldType,
    UpdateCancelled,
)
from bulkset.infrastructure.backends import AsyncSqlAlchemyBackend, SqlAlchemyBackend
from bulkset.infrastructure.schema import SqlAlchemySchema
from bulkset.infrastructure.setters import ChainedSetters, MutatingSetters
from bulkset.services.result import ServiceError, ServiceResult
from bulkset.services.update import FieldUpdateService

__version__ = "0.1.0"

__all__ = [
    "AmbiguousCapability",
    "Assignment",
    "AsyncSqlAlchemyBackend",
    "BulkSetError",
    "BulkSetSettings",
    "BulkUpdater",
    "CapabilityCache",
    "CapabilityError",
    "CapabilityMode",
    "ChainedSetters",
    "CoercionError",
    "ComposedExpression",
    "ConversionFailed",
    "EmptyUpdate",
    "ExpressionComposer",
    "FieldNotFound",
    "FieldSpec",
    "FieldUpdateRequest",
    "FieldUpdateService",
    "InvalidQuery",
    "MutatingSetters",
    "NoCompatibleShape",
    "NullNotAllowed",
    "SchemaError",
    "ServiceError",
    "ServiceResult",
    "SetterPlan",
    "SetterPlanBuilder",
    "SqlAlchemyBackend",
    "SqlAlchemySchema",
    "UnsupportedFieldType",
    "UpdateCancelled",
    "ValueCoercer",
    "build_async_backend",
    "build_backend",
    "build_plan",
    "build_service",
    "cancel_after",
    "coerce_value",
    "configure_from_settings",
    "configure_logging",
    "detect_capability",
]
