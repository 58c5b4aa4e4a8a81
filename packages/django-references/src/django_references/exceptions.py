"""Exceptions for django-references."""


class ReferencesError(Exception):
    """Base exception for reference errors."""

    pass


class UnknownReference(ReferencesError, LookupError):
    """Raised when a reference name is not declared on the owner model."""

    def __init__(self, name: str, model=None):
        self.name = name
        self.model = model
        if model is not None:
            message = f"Unknown reference name '{name}' on {model.__name__}"
        else:
            message = f"Unknown reference name '{name}'"
        super().__init__(message)


class UnknownTargetType(ReferencesError, LookupError):
    """Raised when a type tag cannot be resolved to a class."""

    def __init__(self, type_tag: str):
        self.type_tag = type_tag
        super().__init__(f"Unknown target type '{type_tag}'")


class InvalidArgument(ReferencesError, ValueError):
    """Raised for malformed calls."""

    pass


class IncompleteReference(InvalidArgument):
    """Raised when only one of target type and identifiers is given."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"When setting reference '{name}', both the target type and the "
            "identifiers must be set or empty"
        )


class NotPersisted(InvalidArgument):
    """Raised when a reference target has no identifier values yet."""

    def __init__(self, obj):
        self.obj = obj
        super().__init__(
            f"Target object {type(obj).__name__} has no identifiers, "
            "must be persisted first"
        )


class NotReferenceCapable(InvalidArgument):
    """Raised when an owner type does not implement HasReferences."""

    def __init__(self, model):
        self.model = model
        name = getattr(model, "__name__", model)
        super().__init__(f"{name} does not implement HasReferences")


class InvalidState(ReferencesError):
    """Raised when an operation would leave a reference in an invalid state."""

    pass


class ReferenceNotNullable(InvalidState):
    """Raised when clearing a required reference."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Reference '{name}' cannot be NULL")


class TargetNotAllowed(InvalidState):
    """Raised when the allow-list rejects a target type."""

    def __init__(self, owner_type: str, name: str, target_type: str):
        self.owner_type = owner_type
        self.name = name
        self.target_type = target_type
        super().__init__(
            f"Type {target_type} is not allowed for reference '{name}' "
            f"on {owner_type}"
        )


class ReferencesConfigError(ReferencesError):
    """Raised when references configuration is invalid."""

    pass
