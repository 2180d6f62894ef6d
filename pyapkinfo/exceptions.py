class ApkInfoError(Exception):
    """Base class for exceptions in this package."""
    pass


class ArchiveError(ApkInfoError):
    """Exception raised when the file is not a readable ZIP archive."""
    pass


class CorruptEntryError(ArchiveError):
    """Exception raised when a ZIP entry can not be decompressed or fails its checks."""
    pass


class NotFoundError(ApkInfoError):
    """Exception raised when a ZIP entry or a resource id does not exist."""
    pass


class InvalidApkError(ApkInfoError):
    """Exception raised when the archive has no AndroidManifest.xml."""
    pass


class ResParserError(ApkInfoError):
    """Exception raised when parsing Android resource files fails."""

    def __init__(self, message, offset=None, chunk_type=None):
        super(ResParserError, self).__init__(message)
        self.message = message
        self.offset = offset
        self.chunk_type = chunk_type

    def __str__(self):
        details = []
        if self.offset is not None:
            details.append("offset=0x{:08x}".format(self.offset))
        if self.chunk_type is not None:
            details.append("chunk_type=0x{:04x}".format(self.chunk_type))
        if details:
            return "{} ({})".format(self.message, ", ".join(details))
        return self.message


class BufferUnderrunError(ResParserError):
    """Exception raised when trying to read beyond available buffer data."""
    pass


class InvalidStringPoolError(ResParserError):
    """Exception raised when string pool data is invalid or corrupted."""
    pass


class InvalidChunkError(ResParserError):
    """Exception raised when chunk header or data is invalid."""
    pass


class AxmlFormatError(ResParserError):
    """Exception raised when a binary XML file is malformed or truncated."""
    pass


class ArscFormatError(ResParserError):
    """Exception raised when a resources.arsc file is malformed or truncated."""
    pass


class ExtractionError(ApkInfoError):
    """
    Fatal failure of :func:`~pyapkinfo.core.extract`.

    :param stage: the step which failed, ``"archive"`` or ``"manifest"``
    :param cause: the underlying exception
    """

    def __init__(self, stage, cause):
        super(ExtractionError, self).__init__(stage, cause)
        self.stage = stage
        self.cause = cause

    def __str__(self):
        return "{} stage failed: {}: {}".format(self.stage, type(self.cause).__name__, self.cause)
