"""Internal conversion error raised by structural mappers"""


class ConversionError(ValueError):
    """A structural mapper met a shape it cannot map; always caught at the public entry point."""
