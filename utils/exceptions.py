"""Errors raised by the projection pipeline stages."""


class SDMError(Exception):
    """Base class for every stage failure. All of them abort the run."""


class AcquisitionFailed(SDMError):
    """A network or API request for occurrences or climate layers failed."""


class MissingFile(SDMError):
    """A file expected on disk does not exist."""


class ParseError(SDMError):
    """A persisted file could not be read into the expected table."""


class NoData(SDMError):
    """There are no occurrence points to derive a study area from."""


class InsufficientData(SDMError):
    """Too few unique occurrence coordinates to fit and evaluate a model."""


class BandMismatch(SDMError):
    """A climate stack does not carry the bands a model was fitted on."""


class EmptySample(SDMError):
    """Presence or background scores are empty, so no ROC curve can be built."""
