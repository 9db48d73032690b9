"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from parentconnect.core.capacity import DEFAULT_PRIVACY_LEVEL, PRIVACY_LEVELS
from parentconnect.core.filters import AGE_RANGES
from parentconnect.core.geo import NamedPlace
from parentconnect.core.recurrence import MAX_OCCURRENCES


STORAGE_BACKENDS = ("memory", "firestore")


class ConfigurationError(Exception):
    """Raised when the deployed configuration fails validation."""


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        storage_backend: "memory" or "firestore"
        firestore_project: GCP project ID (None for default)
        firestore_database: Firestore database name (None for default)
        entities_collection: Firestore collection holding entities
        participation_collection: Firestore collection holding memberships
        max_occurrences: Cap on occurrences per recurring series
        default_privacy_level: Privacy level used when a join omits one
        age_ranges: Age labels offered as filter options
        saved_places: Named reference locations for distance filtering
    """
    storage_backend: str = "memory"
    firestore_project: str | None = None
    firestore_database: str | None = None
    entities_collection: str = "scheduled_entities"
    participation_collection: str = "participation"
    max_occurrences: int = MAX_OCCURRENCES
    default_privacy_level: str = DEFAULT_PRIVACY_LEVEL
    age_ranges: tuple[str, ...] = AGE_RANGES
    saved_places: list[NamedPlace] = field(default_factory=list)

    def find_place(self, name: str) -> NamedPlace | None:
        """Look up a saved place by name, case-insensitively."""
        wanted = name.strip().lower()
        for place in self.saved_places:
            if place.name.lower() == wanted:
                return place
        return None


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function. Coordinates are validated when a NamedPlace is built,
    so only cross-field rules are checked here.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    if config.storage_backend not in STORAGE_BACKENDS:
        errors.append(ValidationError(
            field="storage_backend",
            message=f"Unknown storage backend '{config.storage_backend}', "
                    f"expected one of {', '.join(STORAGE_BACKENDS)}",
        ))

    if not 1 <= config.max_occurrences <= MAX_OCCURRENCES:
        errors.append(ValidationError(
            field="max_occurrences",
            message=f"max_occurrences must be between 1 and {MAX_OCCURRENCES}, "
                    f"got {config.max_occurrences}",
        ))

    if config.default_privacy_level not in PRIVACY_LEVELS:
        errors.append(ValidationError(
            field="default_privacy_level",
            message=f"Unknown privacy level '{config.default_privacy_level}'",
        ))

    if not config.age_ranges:
        errors.append(ValidationError(
            field="age_ranges",
            message="No age ranges configured",
            severity="warning",
        ))

    seen: set[str] = set()
    for i, place in enumerate(config.saved_places):
        key = place.name.lower()
        if key in seen:
            errors.append(ValidationError(
                field=f"saved_places[{i}].name",
                message=f"Duplicate place name '{place.name}', only the first is used",
                severity="warning",
            ))
        seen.add(key)

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
