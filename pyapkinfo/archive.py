import io
import logging
import struct
import zipfile
import zlib
from collections import namedtuple

from pyapkinfo.exceptions import ArchiveError, CorruptEntryError, NotFoundError

log = logging.getLogger("pyapkinfo.archive")

# APKs are usually only stored or deflated, both are supported by zipfile
SUPPORTED_COMPRESSION = (zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED)

# Upper bound for the uncompressed size of a single entry
MAX_ENTRY_SIZE = 64 * 1024 * 1024

ZipEntry = namedtuple("ZipEntry", "name compress_type compress_size file_size header_offset crc")


class ArchiveReader(object):
    """
    Random access to the entries of an APK file

    example::

        with ArchiveReader("myfile.apk") as archive:
            manifest = archive.read_entry("AndroidManifest.xml")

    :param filename: path of the file, or the raw data as bytes
    :param max_entry_size: entries which declare a larger uncompressed size
        are rejected as corrupt
    """
    def __init__(self, filename, max_entry_size=MAX_ENTRY_SIZE):
        self.max_entry_size = max_entry_size

        if isinstance(filename, (bytes, bytearray)):
            self.filename = "<raw apk of {} bytes>".format(len(filename))
            resource = io.BytesIO(filename)
        else:
            self.filename = filename
            resource = filename

        try:
            self.zip = zipfile.ZipFile(resource, mode="r")
        except zipfile.BadZipFile as e:
            log.error("'{}' is not a valid ZIP file: {}".format(self.filename, e))
            raise ArchiveError("{} is not a valid ZIP file: {}".format(self.filename, e))
        except (OSError, EOFError, ValueError, OverflowError, struct.error) as e:
            raise ArchiveError("Can not read {}: {}".format(self.filename, e))
        except NotImplementedError as e:
            # a mangled central directory asks for a zip version nobody has
            log.error("'{}' can not be opened: {}".format(self.filename, e))
            raise ArchiveError("{} is not a supported ZIP file: {}".format(self.filename, e))

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        self.zip.close()

    def namelist(self):
        return self.zip.namelist()

    def has_entry(self, name):
        try:
            self.zip.getinfo(name)
        except KeyError:
            return False
        return True

    def get_entry(self, name):
        """
        Return the central directory record of an entry

        :rtype: :class:`ZipEntry`
        """
        try:
            info = self.zip.getinfo(name)
        except KeyError:
            raise NotFoundError("Entry '{}' not found in {}".format(name, self.filename))
        return ZipEntry(info.filename, info.compress_type, info.compress_size,
                        info.file_size, info.header_offset, info.CRC)

    def read_entry(self, name):
        """
        Return the decompressed content of an entry

        The CRC-32 and the size of the data are checked against the
        central directory.

        :param name: name of the entry, e.g. `AndroidManifest.xml`
        :return: bytes
        """
        entry = self.get_entry(name)

        if entry.compress_type not in SUPPORTED_COMPRESSION:
            raise CorruptEntryError("Entry '{}' uses the unsupported compression method {}".format(
                name, entry.compress_type))

        if entry.file_size > self.max_entry_size:
            raise CorruptEntryError("Entry '{}' declares {} bytes, more than the allowed {}".format(
                name, entry.file_size, self.max_entry_size))

        try:
            with self.zip.open(name) as f:
                data = f.read(self.max_entry_size + 1)
        except (zipfile.BadZipFile, zlib.error, EOFError, OSError, ValueError, OverflowError, struct.error) as e:
            # zipfile checks the CRC-32 at the end of the stream, a bad local
            # header offset ends up as a failed or negative seek
            log.error("Entry '{}' is corrupt: {}".format(name, e))
            raise CorruptEntryError("Entry '{}' is corrupt: {}".format(name, e))
        except (NotImplementedError, RuntimeError) as e:
            # unsupported features or encrypted entries
            raise CorruptEntryError("Entry '{}' can not be read: {}".format(name, e))

        if len(data) != entry.file_size:
            raise CorruptEntryError("Entry '{}' has {} bytes, the central directory declares {}".format(
                name, len(data), entry.file_size))

        if zlib.crc32(data) & 0xffffffff != entry.crc:
            raise CorruptEntryError("Entry '{}' has a bad CRC-32".format(name))

        return data
