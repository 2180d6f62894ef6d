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
from collections import namedtuple
from struct import calcsize, unpack

import pyapkinfo.constants as const
from pyapkinfo import bytecode
from pyapkinfo.arscutil import ARSCHeader, ResValue
from pyapkinfo.exceptions import AxmlFormatError, ResParserError
from pyapkinfo.stringblock import StringBlock

log = logging.getLogger("pyapkinfo.axmlparser")

NO_INDEX = 0xFFFFFFFF

# The chunks of a binary XML document. All of them carry the chunk type
# as first field, consumers switch on `chunk.type`.
XmlNamespace = namedtuple("XmlNamespace", "type line prefix uri")
XmlStartTag = namedtuple("XmlStartTag", "type line namespace_uri name attributes")
XmlEndTag = namedtuple("XmlEndTag", "type line namespace_uri name")
XmlText = namedtuple("XmlText", "type line data")

# A single attribute of a start tag.
# `namespace_uri`, `name` and `raw_value` are string pool indices,
# `value` is a :class:`~pyapkinfo.arscutil.ResValue`
AXMLAttribute = namedtuple("AXMLAttribute", "namespace_uri name raw_value value")


class AXMLParser(object):
    """
    AXMLParser reads through all chunks in the AXML file.

    An AXML file is a file which contains multiple chunks of data, defined
    by the `ResChunk_header`.
    There is no real file magic but as the size of the first header is fixed
    and the `type` of the `ResChunk_header` is set to `RES_XML_TYPE`, a file
    will usually start with `0x03000800`.
    But there are several examples where the `type` is set to something
    else, probably in order to fool parsers.

    The chunks are walked strictly by their declared sizes. Every chunk
    which does not fit into the file raises
    :class:`~pyapkinfo.exceptions.AxmlFormatError`, unknown chunks are skipped.

    See http://androidxref.com/9.0.0_r3/xref/frameworks/base/libs/androidfw/include/androidfw/ResourceTypes.h#563
    """
    def __init__(self, raw_buff):
        self.buff = bytecode.BuffHandle(raw_buff)
        self.axml_tampered = False
        self.sb = None
        self.m_resourceIDs = []

        # Minimum is a single ARSCHeader, which would be a strange edge case...
        if self.buff.size() < ARSCHeader.SIZE:
            raise AxmlFormatError(
                "Filesize is too small to be a valid AXML file! Filesize: {}".format(self.buff.size()),
                offset=0)

        try:
            axml_header = ARSCHeader(self.buff)
        except ResParserError as e:
            raise AxmlFormatError("Error parsing first resource header: {}".format(e.message),
                                  offset=e.offset, chunk_type=e.chunk_type)

        self.header = axml_header
        self.filesize = axml_header.size

        if axml_header.header_size == 28024:
            # Can be a common error: the file is not an AXML but a plain XML
            # The file will then usually start with '<?xm' / '3C 3F 78 6D'
            log.warning("Header size is 28024! Are you trying to parse a plain XML file?")

        if axml_header.header_size != const.CHUNK_HEADER_SIZE:
            raise AxmlFormatError(
                "This does not look like an AXML file. "
                "header size does not equal 8! header size = {}".format(axml_header.header_size),
                offset=0, chunk_type=axml_header.type)

        if self.filesize < self.buff.size():
            # The file can still be parsed up to the point where the chunk should end.
            self.axml_tampered = True
            log.warning(
                "Declared filesize ({}) is smaller than total file size ({}). "
                "Was something appended to the file? Trying to parse it anyways.".format(
                    self.filesize, self.buff.size()))

        # Not that severe of an error, we have plenty files where this is not
        # set correctly
        if axml_header.type != const.RES_XML_TYPE:
            self.axml_tampered = True
            log.warning(
                "AXML file has an unusual resource type! "
                "But we try to parse it anyways. "
                "Resource Type: 0x{:04x}".format(axml_header.type))

    def is_tampered(self):
        """
        True if the file header looked odd but the file was parsed anyways
        """
        return self.axml_tampered

    def __iter__(self):
        """
        Iterate over the XML chunks of the file.

        String pool and resource map are consumed internally and are
        available as `sb` and `m_resourceIDs` afterwards.
        """
        try:
            for chunk in self._iter_chunks():
                yield chunk
        except AxmlFormatError:
            raise
        except ResParserError as e:
            log.error("Error parsing AXML chunk: %s", e)
            raise AxmlFormatError(e.message, offset=e.offset, chunk_type=e.chunk_type)

    def _iter_chunks(self):
        self.buff.set_idx(self.header.header_size)

        # Stop at the declared filesize
        while self.buff.get_idx() < self.filesize:
            if self.filesize - self.buff.get_idx() < ARSCHeader.SIZE:
                raise AxmlFormatError("Trailing bytes can not hold a chunk header",
                                      offset=self.buff.get_idx())

            h = ARSCHeader(self.buff, parent_end=self.filesize)
            log.debug("Found a header: {}".format(h))

            if h.type == const.RES_STRING_POOL_TYPE:
                if self.sb is None:
                    self.sb = StringBlock(self.buff, h)
                else:
                    log.warning("Found a second string pool at 0x{:08x}, ignoring it".format(h.start))

            # Special chunk: Resource Map. This chunk might be contained inside
            # the file, after the string pool.
            elif h.type == const.RES_XML_RESOURCE_MAP_TYPE:
                log.debug("AXML contains a RESOURCE MAP")
                if (h.size - h.header_size) % 4 != 0:
                    raise AxmlFormatError("Invalid chunk size in chunk XML_RESOURCE_MAP",
                                          offset=h.start, chunk_type=h.type)
                count = (h.size - h.header_size) // 4
                raw = self.buff.read_at(h.start + h.header_size, count * 4)
                self.m_resourceIDs = list(unpack('<{}L'.format(count), raw))

            # unknown chunk types might cause problems, but we can skip them!
            elif h.type < const.RES_XML_FIRST_CHUNK_TYPE or h.type > const.RES_XML_LAST_CHUNK_TYPE:
                log.warning("Not a XML resource chunk type: 0x{:04x}. Skipping {} bytes".format(h.type, h.size))

            elif h.header_size < const.XML_NODE_HEADER_SIZE:
                log.error(
                    "XML Resource Type Chunk header size is smaller than 16! "
                    "At chunk type 0x{:04x}, declared header size={}, "
                    "chunk size={}".format(h.type, h.header_size, h.size))

            else:
                if self.sb is None:
                    raise AxmlFormatError("XML chunk found before the string pool",
                                          offset=h.start, chunk_type=h.type)
                chunk = self._parse_node(h)
                if chunk is not None:
                    yield chunk

            # skip to the next chunk
            self.buff.set_idx(h.end)

        if self.sb is None:
            raise AxmlFormatError("AXML file has no string pool", offset=0)

    def _parse_node(self, h):
        # Line Number of the source file, only used as meta information
        # Comment_Index (usually 0xFFFFFFFF)
        self.buff.set_idx(h.start + ARSCHeader.SIZE)
        line_number, comment_index = self.buff.unpack('<LL')

        body = h.start + h.header_size

        if h.type in (const.RES_XML_START_NAMESPACE_TYPE, const.RES_XML_END_NAMESPACE_TYPE):
            prefix, uri = self._read_body(h, body, '<LL')
            self._check_index(uri, h)
            log.debug("Namespace chunk 0x{:04x}: prefix {} --> uri {}".format(h.type, prefix, uri))
            return XmlNamespace(h.type, line_number, prefix, uri)

        # START_TAG is the start of a new tag.
        if h.type == const.RES_XML_START_ELEMENT_TYPE:
            # The TAG consists of some fields:
            # * namespace_uri (String ID)
            # * name (String ID)
            # * attribute_start, attribute_size, attribute_count
            # * id_index, class_index, style_index
            (namespace_uri, name, attribute_start, attribute_size,
             attribute_count, _, _, _) = self._read_body(h, body, '<LL6H')
            self._check_index(name, h)

            if attribute_count and attribute_size < const.ATTRIBUTE_SIZE:
                raise AxmlFormatError(
                    "Attribute size {} is smaller than {}".format(attribute_size, const.ATTRIBUTE_SIZE),
                    offset=h.start, chunk_type=h.type)

            attributes = []
            offset = body + attribute_start
            for i in range(attribute_count):
                if offset + const.ATTRIBUTE_SIZE > h.end:
                    raise AxmlFormatError(
                        "Attribute {} of {} reads past the end of the tag chunk".format(i, attribute_count),
                        offset=offset, chunk_type=h.type)
                raw = self.buff.read_at(offset, const.ATTRIBUTE_SIZE)
                attr_ns, attr_name, raw_value = unpack('<LLL', raw[:12])
                value = ResValue.from_bytes(raw[12:])

                self._check_index(attr_name, h, allow_none=False)
                if value.is_string():
                    if raw_value == NO_INDEX:
                        raw_value = value.data
                    self._check_index(raw_value, h, allow_none=False)

                attributes.append(AXMLAttribute(attr_ns, attr_name, raw_value, value))
                offset += attribute_size

            return XmlStartTag(h.type, line_number, namespace_uri, name, tuple(attributes))

        if h.type == const.RES_XML_END_ELEMENT_TYPE:
            namespace_uri, name = self._read_body(h, body, '<LL')
            self._check_index(name, h)
            return XmlEndTag(h.type, line_number, namespace_uri, name)

        if h.type == const.RES_XML_CDATA_TYPE:
            # The CDATA field is like an attribute.
            # It contains an index into the String pool
            # as well as a typed value, usually set to UNDEFINED
            data, = self._read_body(h, body, '<L')
            self._check_index(data, h)
            return XmlText(h.type, line_number, data)

        # Still here? Looks like we read an unknown XML header, try to skip it...
        log.warning("Unknown XML Chunk: 0x{:04x}, skipping {} bytes.".format(h.type, h.size))
        return None

    def _read_body(self, h, body, fmt):
        size = calcsize(fmt)
        if body + size > h.end:
            raise AxmlFormatError("Chunk body is truncated", offset=h.start, chunk_type=h.type)
        return unpack(fmt, self.buff.read_at(body, size))

    def _check_index(self, idx, h, allow_none=True):
        if allow_none and idx == NO_INDEX:
            return
        if not self.sb.is_valid_index(idx):
            raise AxmlFormatError(
                "String index {} is out of range, the pool holds {} strings".format(idx, len(self.sb)),
                offset=h.start, chunk_type=h.type)

    def parse(self):
        """
        Read the whole file

        :return: :class:`AxmlDocument`
        """
        chunks = list(self)
        return AxmlDocument(self.sb, tuple(self.m_resourceIDs), tuple(chunks))


def parse(raw_buff):
    """
    Decode a binary XML file

    :param raw_buff: the content of the file as bytes
    :return: :class:`AxmlDocument`
    :raises AxmlFormatError: if the file is malformed or truncated
    """
    return AXMLParser(raw_buff).parse()


class AxmlDocument(object):
    """
    A decoded binary XML file: the string pool, the resource map and
    the ordered list of XML chunks.
    """
    def __init__(self, string_block, resource_ids, chunks):
        self.sb = string_block
        self.resource_ids = resource_ids
        self.chunks = chunks

    def get_string(self, idx):
        if idx == NO_INDEX:
            return u''
        return self.sb.getString(idx)

    def start_tags(self):
        for chunk in self.chunks:
            if chunk.type == const.RES_XML_START_ELEMENT_TYPE:
                yield chunk

    def get_root(self):
        """
        Return the first start tag of the document or None
        """
        for tag in self.start_tags():
            return tag
        return None

    def get_tag_name(self, tag):
        return self.get_string(tag.name)

    def find_tags(self, tag_name):
        """
        Return all start tags with the given name, in document order
        """
        return [tag for tag in self.start_tags() if self.get_tag_name(tag) == tag_name]

    def get_attribute_resource_id(self, attribute):
        """
        Return the resource id of the attribute name, taken from the resource map
        """
        if attribute.name < len(self.resource_ids):
            return self.resource_ids[attribute.name]
        return None

    def get_attribute_name(self, attribute):
        """
        Returns the String which represents the attribute name
        """
        res = self.get_string(attribute.name)
        # If the result is a (null) string, we need to look it up.
        if not res:
            res_id = self.get_attribute_resource_id(attribute)
            if res_id is None:
                return res
            if res_id in const.SYSTEM_ATTRIBUTES_INVERSE:
                res = const.SYSTEM_ATTRIBUTES_INVERSE[res_id]
            else:
                # Attach the HEX Number, so for multiple missing attributes we do not run
                # into problems.
                res = 'UNKNOWN_SYSTEM_ATTRIBUTE_{:08x}'.format(res_id)
        return res

    def get_attribute_namespace(self, attribute):
        return self.get_string(attribute.namespace_uri)

    def find_attribute(self, tag, name):
        """
        Return the attribute `name` of the given start tag or None

        Attributes are matched by their android resource id first, as packers
        like to rename the attribute strings, then by their name.
        """
        res_id = const.SYSTEM_ATTRIBUTES.get(name)
        if res_id is not None:
            for attribute in tag.attributes:
                if self.get_attribute_resource_id(attribute) == res_id:
                    return attribute

        for attribute in tag.attributes:
            if self.get_attribute_name(attribute) == name:
                return attribute
        return None

    def get_attribute(self, tag_name, name):
        """
        Return the attribute `name` of the first tag `tag_name` which has it
        """
        for tag in self.find_tags(tag_name):
            attribute = self.find_attribute(tag, name)
            if attribute is not None:
                return attribute
        return None

    def get_attribute_string(self, attribute):
        """
        Return the string value of an attribute with a string typed value
        """
        return self.get_string(attribute.raw_value)

    def format_attribute(self, attribute):
        """
        Format the value of the attribute as text
        """
        return attribute.value.format_value(lambda _: self.get_attribute_string(attribute))

    def get_attribute_value(self, tag_name, name):
        """
        Return the formatted value of the attribute or None if not present

        :param tag_name: specify the tag name
        :param name: specify the attribute name, without namespace
        """
        attribute = self.get_attribute(tag_name, name)
        if attribute is None:
            return None
        return self.format_attribute(attribute)
