# This file is part of Androguard.
#
# Copyright (C) 2012, Anthony Desnos <desnos at t0t0.fr>
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
from pyapkinfo.exceptions import InvalidStringPoolError, BufferUnderrunError


log = logging.getLogger("pyapkinfo.stringblock")


class StringBlock(object):
    """
    StringBlock is a CHUNK inside an AXML or ARSC File
    It contains all strings, which are used by referencing to ID's

    The block is decoded from the chunk bounds given by `header` only,
    offsets pointing outside of the chunk raise
    :class:`~pyapkinfo.exceptions.InvalidStringPoolError`.

    See http://androidxref.com/9.0.0_r3/xref/frameworks/base/libs/androidfw/include/androidfw/ResourceTypes.h#436
    """
    def __init__(self, buff, header):
        """
        :param buff: :class:`~pyapkinfo.bytecode.BuffHandle` which holds the string block
        :param header: a instance of :class:`~pyapkinfo.arscutil.ARSCHeader`
        """
        self.header = header

        if header.header_size < const.STRING_POOL_HEADER_SIZE:
            raise InvalidStringPoolError(
                "String pool header is too small: {}".format(header.header_size),
                offset=header.start, chunk_type=header.type)

        try:
            buff.set_idx(header.start + const.CHUNK_HEADER_SIZE)
            (self.stringCount, self.styleCount, self.flags,
             self.stringsOffset, self.stylesOffset) = buff.unpack('<5I')
        except BufferUnderrunError as e:
            raise InvalidStringPoolError(
                "String pool header is truncated", offset=e.offset, chunk_type=header.type)

        self.m_isUTF8 = ((self.flags & const.UTF8_FLAG) != 0)

        # Check if they supplied a stylesOffset even if the count is 0:
        if self.styleCount == 0 and self.stylesOffset > 0:
            log.info("Styles Offset given, but styleCount is zero. "
                     "This is not a problem but could indicate packers.")

        offsets_start = header.start + header.header_size
        offsets_size = 4 * (self.stringCount + self.styleCount)
        if header.header_size + offsets_size > header.size:
            raise InvalidStringPoolError(
                "String pool declares {} strings and {} styles, "
                "which do not fit into a chunk of {} bytes".format(
                    self.stringCount, self.styleCount, header.size),
                offset=header.start, chunk_type=header.type)

        # A list of string offsets (4 byte each), relative to the string data
        raw_offsets = buff.read_at(offsets_start, 4 * self.stringCount)
        self.m_stringOffsets = list(unpack('<{}I'.format(self.stringCount), raw_offsets))

        if self.stringCount == 0:
            self.m_charbuff = b""
            return

        if self.stringsOffset < header.header_size + offsets_size or self.stringsOffset > header.size:
            raise InvalidStringPoolError(
                "String data offset 0x{:x} is outside of the chunk".format(self.stringsOffset),
                offset=header.start, chunk_type=header.type)

        size = header.size - self.stringsOffset

        # if there are styles as well, we do not want to read them too.
        if self.stylesOffset != 0 and self.styleCount != 0:
            if not self.stringsOffset <= self.stylesOffset <= header.size:
                raise InvalidStringPoolError(
                    "Styles offset 0x{:x} is outside of the chunk".format(self.stylesOffset),
                    offset=header.start, chunk_type=header.type)
            size = self.stylesOffset - self.stringsOffset

        if (size % 4) != 0:
            log.warning("Size of strings is not aligned by four bytes.")

        self.m_charbuff = buff.read_at(header.start + self.stringsOffset, size)
        buff.set_idx(header.end)

    def __getitem__(self, idx):
        """
        Returns the string at the index in the string table
        """
        return self.getString(idx)

    def __len__(self):
        """
        Get the number of strings stored in this table
        """
        return self.stringCount

    def __iter__(self):
        """
        Iterable over all strings
        """
        for i in range(self.stringCount):
            yield self.getString(i)

    def is_valid_index(self, idx):
        return 0 <= idx < self.stringCount

    def getString(self, idx):
        """
        Return the string at the index in the string table

        :param idx: index in the string table
        :return: str
        """
        if not self.is_valid_index(idx):
            raise InvalidStringPoolError(
                "String index {} is out of range, the pool holds {} strings".format(idx, self.stringCount),
                offset=self.header.start, chunk_type=self.header.type)

        offset = self.m_stringOffsets[idx]

        if self.m_isUTF8:
            return self._decode8(offset)
        return self._decode16(offset)

    def _decode8(self, offset):
        """
        Decode an UTF-8 String at the given offset

        :param offset: offset of the string inside the data
        :return: str
        """
        # UTF-8 Strings contain two lengths, as they might differ:
        # 1) the UTF-16 length
        str_len, skip = self._decode_length(offset, 1)
        offset += skip

        # 2) the utf-8 string length
        encoded_bytes, skip = self._decode_length(offset, 1)
        offset += skip

        data = self._read_data(offset, encoded_bytes)

        if self.m_charbuff[offset + encoded_bytes:offset + encoded_bytes + 1] != b"\x00":
            log.warning("UTF-8 String is not null terminated! At offset={}".format(offset))

        return self._decode_bytes(data, 'utf-8', str_len)

    def _decode16(self, offset):
        """
        Decode an UTF-16 String at the given offset

        :param offset: offset of the string inside the data
        :return: str
        """
        str_len, skip = self._decode_length(offset, 2)
        offset += skip

        # The len is the string len in utf-16 units
        encoded_bytes = str_len * 2

        data = self._read_data(offset, encoded_bytes)

        if self.m_charbuff[offset + encoded_bytes:offset + encoded_bytes + 2] != b"\x00\x00":
            log.warning("UTF-16 String is not null terminated! At offset={}".format(offset))

        return self._decode_bytes(data, 'utf-16-le', str_len)

    def _read_data(self, offset, size):
        if offset + size > len(self.m_charbuff):
            raise InvalidStringPoolError(
                "String of {} bytes at offset {} exceeds the string data of {} bytes".format(
                    size, offset, len(self.m_charbuff)),
                offset=self.header.start + self.stringsOffset + offset,
                chunk_type=self.header.type)
        return self.m_charbuff[offset: offset + size]

    @staticmethod
    def _decode_bytes(data, encoding, str_len):
        """
        Generic decoding with length check.
        The string is decoded from bytes with the given encoding, then the length
        of the string is checked.
        The string is decoded using the "replace" method.

        :param data: bytes
        :param encoding: encoding name ("utf-8" or "utf-16-le")
        :param str_len: length of the decoded string
        :return: str
        """
        string = data.decode(encoding, 'replace')
        if len(string) != str_len:
            log.debug("invalid decoded string length")
        return string

    def _decode_length(self, offset, sizeof_char):
        """
        Generic Length Decoding at offset of string

        The method works for both 8 and 16 bit Strings.
        If the high bit of the first unit is set, the length spans two units.

        :param offset: offset into the string data section of the beginning of
        the string
        :param sizeof_char: number of bytes per char (1 = 8bit, 2 = 16bit)
        :returns: tuple of (length, read bytes)
        """
        fmt = '<{}'.format('B' if sizeof_char == 1 else 'H')
        highbit = 0x80 << (8 * (sizeof_char - 1))

        length1, = unpack(fmt, self._read_data(offset, sizeof_char))

        if (length1 & highbit) != 0:
            length2, = unpack(fmt, self._read_data(offset + sizeof_char, sizeof_char))
            length = ((length1 & ~highbit) << (8 * sizeof_char)) | length2
            size = sizeof_char * 2
        else:
            length = length1
            size = sizeof_char

        return length, size

    def __repr__(self):
        return ("<StringBlock idx='0x{:08x}' strings='{}' styles='{}' utf8='{}'>").format(
            self.header.start, self.stringCount, self.styleCount, self.m_isUTF8)
