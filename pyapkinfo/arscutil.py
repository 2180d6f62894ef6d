# This file is part of Androguard.
#
# Copyright (C) 2012/2013, Anthony Desnos <desnos at t0t0.fr>
# All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS-IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
from struct import unpack

import pyapkinfo.constants as const
from pyapkinfo.exceptions import InvalidChunkError
from pyapkinfo.utils import format_value

log = logging.getLogger("pyapkinfo.arscutil")


class ARSCHeader(object):
    """
    Object which contains a Resource Chunk.
    This is an implementation of the `ResChunk_header`.

    It will raise an :class:`~pyapkinfo.exceptions.InvalidChunkError` if the
    header could not be read successfully or if the declared chunk does not
    fit into the buffer (or into `parent_end`, if given).

    See http://androidxref.com/9.0.0_r3/xref/frameworks/base/libs/androidfw/include/androidfw/ResourceTypes.h#196
    """
    SIZE = 2 + 2 + 4

    def __init__(self, buff, parent_end=None):
        self.start = buff.get_idx()
        # Make sure we do not read over the buffer:
        if buff.size() < self.start + self.SIZE:
            raise InvalidChunkError("Can not read a chunk header over the buffer size", offset=self.start)
        self._type, self._header_size, self._size = buff.unpack('<HHL')

        limit = buff.size() if parent_end is None else min(parent_end, buff.size())

        # The total size must be equal or larger than the header size
        if self._header_size < self.SIZE:
            raise InvalidChunkError(
                "declared header size {} is smaller than required size of {}".format(
                    self._header_size, self.SIZE),
                offset=self.start, chunk_type=self._type)
        if self._size < self._header_size:
            raise InvalidChunkError(
                "declared chunk size ({}) is smaller than header size ({})".format(
                    self._size, self._header_size),
                offset=self.start, chunk_type=self._type)
        if self.start + self._size > limit:
            raise InvalidChunkError(
                "declared chunk size ({}) reads past the end of the data at 0x{:x}".format(
                    self._size, limit),
                offset=self.start, chunk_type=self._type)

    @property
    def type(self):
        """
        Type identifier for this chunk
        """
        return self._type

    @property
    def header_size(self):
        """
        Size of the chunk header (in bytes).  Adding this value to
        the address of the chunk allows you to find its associated data
        (if any).
        """
        return self._header_size

    @property
    def size(self):
        """
        Total size of this chunk (in bytes).  This is the chunkSize plus
        the size of any data associated with the chunk.  Adding this value
        to the chunk allows you to completely skip its contents (including
        any child chunks).
        """
        return self._size

    @property
    def end(self):
        """
        Get the absolute offset inside the file, where the chunk ends.
        This is equal to `ARSCHeader.start + ARSCHeader.size`.
        """
        return self.start + self.size

    def __repr__(self):
        return (
            "<ARSCHeader idx='0x{:08x}' type='{}' header_size='{}' size='{}'>"
        ).format(self.start, const.CHUNK_NAMES.get(self.type, hex(self.type)), self.header_size, self.size)


class ARSCResTablePackage(object):
    """
    See http://androidxref.com/9.0.0_r3/xref/frameworks/base/libs/androidfw/include/androidfw/ResourceTypes.h#861
    """
    def __init__(self, buff, header):
        self.header = header
        if header.header_size < const.TABLE_PACKAGE_HEADER_SIZE:
            raise InvalidChunkError(
                "Package header is too small: {}".format(header.header_size),
                offset=header.start, chunk_type=header.type)

        buff.set_idx(header.start + ARSCHeader.SIZE)
        self.id, = buff.unpack('<I')
        self.name = buff.read(256)
        (self.typeStrings, self.lastPublicType,
         self.keyStrings, self.lastPublicKey) = buff.unpack('<4I')

        if self.id > 0xff:
            raise InvalidChunkError(
                "Package id 0x{:x} does not fit into a resource id".format(self.id),
                offset=header.start, chunk_type=header.type)

    def get_name(self):
        name = self.name.decode("utf-16-le", 'replace')
        if "\x00" in name:
            name = name[:name.find("\x00")]
        return name

    def __repr__(self):
        return "<ARSCResTablePackage id='0x{:02x}' name='{}'>".format(self.id, self.get_name())


class ARSCResTypeSpec(object):
    """
    See http://androidxref.com/9.0.0_r3/xref/frameworks/base/libs/androidfw/include/androidfw/ResourceTypes.h#1327
    """
    def __init__(self, buff, header):
        self.header = header
        buff.set_idx(header.start + ARSCHeader.SIZE)
        self.id, self.res0, self.res1, self.entryCount = buff.unpack('<BBHI')

        if self.res0 != 0:
            log.warning("res0 is not zero!")
        if self.res1 != 0:
            log.warning("res1 is not zero!")

        if self.id == 0:
            raise InvalidChunkError("Type spec with type id 0", offset=header.start, chunk_type=header.type)

        if header.header_size + 4 * self.entryCount > header.size:
            raise InvalidChunkError(
                "Type spec declares {} entries which do not fit into the chunk".format(self.entryCount),
                offset=header.start, chunk_type=header.type)


class ARSCResType(object):
    """
    A single configuration variant of a resource type.

    Only the offsets of the entries are read on construction, entries
    are decoded on access by :meth:`get_entry`.

    See http://androidxref.com/9.0.0_r3/xref/frameworks/base/libs/androidfw/include/androidfw/ResourceTypes.h#1364
    """
    def __init__(self, buff, header, package_id=0):
        self.buff = buff
        self.header = header
        self.start = header.start

        if header.header_size < const.TABLE_TYPE_HEADER_SIZE:
            raise InvalidChunkError(
                "Type header is too small: {}".format(header.header_size),
                offset=header.start, chunk_type=header.type)

        buff.set_idx(header.start + ARSCHeader.SIZE)
        self.id, self.flags, self.reserved, self.entryCount, self.entriesStart = buff.unpack('<BBHII')

        if self.id == 0:
            raise InvalidChunkError("Type with type id 0", offset=header.start, chunk_type=header.type)
        if self.reserved != 0:
            log.debug("reserved field of type 0x{:02x} is not zero".format(self.id))

        self.mResId = (package_id << 24) | (self.id << 16)

        self.config = ARSCResTableConfig(buff, header.start + const.TABLE_TYPE_HEADER_SIZE,
                                         header.start + header.header_size)

        if self.entriesStart > header.size:
            raise InvalidChunkError(
                "Entries start 0x{:x} is outside of the chunk".format(self.entriesStart),
                offset=header.start, chunk_type=header.type)

        self._offsets = self._read_offsets()

    def _read_offsets(self):
        """
        Read the entry offset array and return a dict of entry index to the
        absolute offset of the entry.
        """
        header = self.header
        array_start = header.start + header.header_size
        is_sparse = (self.flags & const.TYPE_FLAG_SPARSE) != 0
        is_offset16 = (self.flags & const.TYPE_FLAG_OFFSET16) != 0

        item_size = 2 if is_offset16 and not is_sparse else 4
        if array_start + item_size * self.entryCount > header.start + self.entriesStart:
            raise InvalidChunkError(
                "Entry offset array of {} entries overlaps the entry data".format(self.entryCount),
                offset=header.start, chunk_type=header.type)

        raw = self.buff.read_at(array_start, item_size * self.entryCount)
        entries_base = header.start + self.entriesStart
        offsets = {}

        if is_sparse:
            # ResTable_sparseTypeEntry: uint16_t idx, uint16_t offset / 4
            values = unpack('<{}H'.format(2 * self.entryCount), raw)
            for i in range(self.entryCount):
                offsets[values[2 * i]] = entries_base + values[2 * i + 1] * 4
        elif is_offset16:
            for idx, value in enumerate(unpack('<{}H'.format(self.entryCount), raw)):
                if value != const.NO_ENTRY16:
                    offsets[idx] = entries_base + value * 4
        else:
            for idx, value in enumerate(unpack('<{}I'.format(self.entryCount), raw)):
                if value != const.NO_ENTRY:
                    offsets[idx] = entries_base + value

        return offsets

    def get_entry(self, index):
        """
        Decode the entry at the given entry index

        :param index: the entry index, the lower 16 bit of a resource id
        :return: :class:`ARSCResTableEntry` or None if the entry is absent
        """
        offset = self._offsets.get(index)
        if offset is None:
            return None
        return ARSCResTableEntry(self.buff, offset, self.header.end, self.mResId | index)

    def __repr__(self):
        return "<ARSCResType idx='0x{:08x}' id='0x{:02x}' flags='0x{:02x}' entries='{}' config='{}'>".format(
            self.start, self.id, self.flags, self.entryCount, self.config.get_qualifier())


class ARSCResTableConfig(object):
    """
    ARSCResTableConfig contains the configuration for specific resource selection.
    This is used on the device to determine which resources should be loaded
    based on different properties of the device like locale or displaysize.

    Configurations written by older tools are shorter, missing fields are zero.

    See the definition of ResTable_config in
    http://androidxref.com/9.0.0_r3/xref/frameworks/base/libs/androidfw/include/androidfw/ResourceTypes.h#911
    """
    # size, imsi, locale, screenType, input, screenSize, version,
    # screenConfig, screenSizeDp, localeScript, localeVariant, screenConfig2
    FORMAT = '<9I4s8sI'
    FULL_SIZE = 52

    def __init__(self, buff, start, limit=None):
        self.start = start
        self.size, = unpack('<I', buff.read_at(start, 4))
        if limit is not None and start + self.size > limit:
            raise InvalidChunkError(
                "Configuration of {} bytes does not fit into the type header".format(self.size),
                offset=start, chunk_type=const.RES_TABLE_TYPE_TYPE)
        raw = buff.read_at(start, min(max(self.size, 4), self.FULL_SIZE))
        raw = raw + b"\x00" * (self.FULL_SIZE - len(raw))

        (_, self.imsi, self.locale, self.screenType, self.input,
         self.screenSize, self.version, self.screenConfig, self.screenSizeDp,
         self.localeScript, self.localeVariant, self.screenConfig2) = unpack(self.FORMAT, raw)

    def _unpack_language_or_region(self, char_in, char_base):
        char_out = ""
        if char_in[0] & 0x80:
            first = char_in[1] & 0x1f
            second = ((char_in[1] & 0xe0) >> 5) + ((char_in[0] & 0x03) << 3)
            third = (char_in[0] & 0x7c) >> 2
            char_out += chr(first + char_base)
            char_out += chr(second + char_base)
            char_out += chr(third + char_base)
        else:
            if char_in[0]:
                char_out += chr(char_in[0])
            if char_in[1]:
                char_out += chr(char_in[1])
        return char_out

    def get_language_and_region(self):
        """
        Returns the combined language+region string or \x00\x00 for the default locale
        :return:
        """
        if self.locale != 0:
            _language = self._unpack_language_or_region(
                [self.locale & 0xff, (self.locale & 0xff00) >> 8, ], ord('a'))
            _region = self._unpack_language_or_region(
                [
                    (self.locale & 0xff0000) >> 16,
                    (self.locale & 0xff000000) >> 24,
                ], ord('0')
            )
            return (_language + "-r" + _region) if _region else _language
        return "\x00\x00"

    def get_density(self):
        return (self.screenType >> 16) & 0xffff

    def has_locale(self):
        return self.locale != 0 or self.localeScript.strip(b"\x00") != b"" \
            or self.localeVariant.strip(b"\x00") != b""

    def is_unqualified(self):
        """
        True if this configuration has neither a locale nor a density qualifier
        """
        return not self.has_locale() and self.get_density() == const.DENSITY_DEFAULT

    def is_default(self):
        """
        Test if this is a default resource, which matches all

        This is indicated that all fields are zero.
        :return: True if default, False otherwise
        """
        return not self.has_locale() and all(x == 0 for x in self._get_tuple())

    def get_qualifier(self):
        """
        Return resource name qualifier for the current configuration.
        for example
        * `ldpi-v4`
        * `de-rDE-hdpi`

        Only the qualifiers which are interesting for logging are printed.
        :return: str
        """
        res = []

        mcc = self.imsi & 0xFFFF
        mnc = (self.imsi & 0xFFFF0000) >> 16
        if mcc != 0:
            res.append("mcc%d" % mcc)
        if mnc != 0:
            res.append("mnc%d" % mnc)

        if self.locale != 0:
            res.append(self.get_language_and_region())

        screenLayout = self.screenConfig & 0xff
        if screenLayout & const.MASK_LAYOUTDIR == const.LAYOUTDIR_LTR:
            res.append("ldltr")
        elif screenLayout & const.MASK_LAYOUTDIR == const.LAYOUTDIR_RTL:
            res.append("ldrtl")

        smallestScreenWidthDp = (self.screenConfig & 0xFFFF0000) >> 16
        if smallestScreenWidthDp != 0:
            res.append("sw%ddp" % smallestScreenWidthDp)

        density = self.get_density()
        if density != const.DENSITY_DEFAULT:
            res.append(const.DENSITY_NAMES.get(density, "%ddpi" % density))

        if self.version != 0:
            res.append("v%d" % (self.version & 0xffff))

        return "-".join(res)

    def _get_tuple(self):
        return (
            self.imsi,
            self.locale,
            self.screenType,
            self.input,
            self.screenSize,
            self.version,
            self.screenConfig,
            self.screenSizeDp,
            self.screenConfig2,
        )

    def __hash__(self):
        return hash(self._get_tuple() + (self.localeScript, self.localeVariant))

    def __eq__(self, other):
        if not isinstance(other, ARSCResTableConfig):
            return NotImplemented
        return self._get_tuple() == other._get_tuple() and \
            self.localeScript == other.localeScript and \
            self.localeVariant == other.localeVariant

    def __repr__(self):
        return "<ARSCResTableConfig '{}'='{}'>".format(self.get_qualifier(), repr(self._get_tuple()))


class ARSCResTableEntry(object):
    """
    A single resource entry of a type.

    Three layouts exist: the simple entry followed by a Res_value,
    the complex (map) entry and the compact entry, which stores the
    key index and the value inline.

    See http://androidxref.com/9.0.0_r3/xref/frameworks/base/libs/androidfw/include/androidfw/ResourceTypes.h#1431
    """
    FLAG_COMPLEX = 0x0001
    FLAG_COMPACT = 0x0008

    def __init__(self, buff, offset, limit, mResId):
        self.start = offset
        self.mResId = mResId
        self.key = None

        if offset + 8 > limit:
            raise InvalidChunkError("Entry header reads past the type chunk", offset=offset,
                                    chunk_type=const.RES_TABLE_TYPE_TYPE)

        self.size, self.flags, self.index = unpack('<HHI', buff.read_at(offset, 8))

        if self.is_compact():
            # key index in the size field, data type in the upper byte of the flags
            self.index = self.size
            self.key = ResValue(self.flags >> 8, unpack('<I', buff.read_at(offset + 4, 4))[0])
            self.flags &= 0xff
            return

        if self.size < 8:
            raise InvalidChunkError("Entry size {} is too small".format(self.size), offset=offset,
                                    chunk_type=const.RES_TABLE_TYPE_TYPE)

        if self.is_complex():
            # ResTable_map_entry: parent reference and item count follow
            if offset + 16 > limit:
                raise InvalidChunkError("Map entry reads past the type chunk", offset=offset,
                                        chunk_type=const.RES_TABLE_TYPE_TYPE)
            self.id_parent, self.count = unpack('<II', buff.read_at(offset + 8, 8))
        else:
            # If FLAG_COMPLEX is not set, a Res_value structure will follow
            value_start = offset + self.size
            if value_start + const.RES_VALUE_SIZE > limit:
                raise InvalidChunkError("Value reads past the type chunk", offset=value_start,
                                        chunk_type=const.RES_TABLE_TYPE_TYPE)
            self.key = ResValue.from_bytes(buff.read_at(value_start, const.RES_VALUE_SIZE))

    def get_index(self):
        return self.index

    def is_complex(self):
        return (self.flags & self.FLAG_COMPLEX) != 0

    def is_compact(self):
        return (self.flags & self.FLAG_COMPACT) != 0

    def __repr__(self):
        return (
            "<ARSCResTableEntry idx='0x{:08x}' mResId='0x{:08x}' "
            "flags='0x{:02x}' index='0x{:x}' holding={}>"
        ).format(self.start, self.mResId, self.flags, self.index, self.key)


class ResValue(object):
    """
    A typed value, the `Res_value` structure.

    Used for the attributes of binary XML files as well as for the
    simple entries of the resource table.
    """
    def __init__(self, data_type, data, size=const.RES_VALUE_SIZE):
        self.size = size
        self.data_type = data_type
        self.data = data

    @classmethod
    def from_bytes(cls, raw):
        size, res0, data_type, data = unpack('<HBBI', raw)
        if res0 != 0:
            log.warning("res0 is not zero!")
        return cls(data_type, data, size)

    def get_data_type_string(self):
        return const.TYPE_TABLE.get(self.data_type, "0x%x" % self.data_type)

    def is_string(self):
        return self.data_type == const.TYPE_STRING

    def is_reference(self):
        return self.data_type in (const.TYPE_REFERENCE, const.TYPE_DYNAMIC_REFERENCE)

    def format_value(self, lookup_string=lambda ix: "<string>"):
        return format_value(self.data_type, self.data, lookup_string)

    def __eq__(self, other):
        if not isinstance(other, ResValue):
            return NotImplemented
        return (self.data_type, self.data) == (other.data_type, other.data)

    def __hash__(self):
        return hash((self.data_type, self.data))

    def __repr__(self):
        return "<ResValue type='{}' data='0x{:08x}'>".format(self.get_data_type_string(), self.data)
