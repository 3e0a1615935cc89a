class DecodeError(ValueError):
    """Base class for lane decoding failures."""


class InputShapeMismatch(DecodeError):
    """Output grids have inconsistent or unexpected shapes."""
