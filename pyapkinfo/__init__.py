# flake8: noqa

__all__ = (
    "__title__",
    "__package_name__",
    "__description__",
    "__url__",
    "__version__",
    "__author__",
    "__author_email__",
    "__license__",
    "APKInfo",
    "extract",
    "extract_from_bytes",
    "ArchiveReader",
    "AXMLPrinter",
    "AXMLParser",
    "ARSCParser",
)

__title__ = "pyapkinfo"
__package_name__ = "pyapkinfo"
__description__ = (
    "Read package name, app name and version of an Android APK without using Androguard."
)
__url__ = "https://github.com/appknox/pyapkinfo"
__version__ = "0.1.0"
__author__ = "Subho Halder"
__author_email__ = "sunny@appknox.com"
__license__ = "Apache License 2.0"

from .core import APKInfo, extract, extract_from_bytes
from .archive import ArchiveReader
from .axmlprinter import AXMLPrinter
from .axmlparser import AXMLParser
from .arscparser import ARSCParser
