class JugglerError(Exception):
    """Base class for errors raised by juggler models."""


class UnknownPropertyError(JugglerError, ValueError):
    """Raised in strict "throw" mode when input data carries an undeclared key"""

    def __init__(self, name: str):
        super().__init__(f"Unknown property: {name}")
        self.name = name


class MissingTypeError(JugglerError, TypeError):
    """Raised when a declared property has no type"""

    def __init__(self, model_name: str, name: str):
        super().__init__(f"Type not defined for property {model_name}.{name}")
        self.model_name = model_name
        self.name = name
