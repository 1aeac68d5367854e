"""Exceptions raised at the I/O boundaries of the pattern pipeline."""


class BeadgridError(Exception):
    """Base class for all beadgrid failures."""


class ImageDecodeError(BeadgridError, ValueError):
    """The source image could not be read or decoded."""


class SurfaceError(BeadgridError, RuntimeError):
    """A pixel surface of the requested size could not be produced."""
