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

import re
import binascii
import logging

import pyapkinfo.constants as const
from lxml import etree

log = logging.getLogger("pyapkinfo.axmlprinter")

_CHARRANGE = re.compile(u'^[\u0020-\uD7FF\u0009\u000A\u000D\uE000-\uFFFD\U00010000-\U0010FFFF]*$')
_REPLACEMENT = re.compile(u'[^\u0020-\uD7FF\u0009\u000A\u000D\uE000-\uFFFD\U00010000-\U0010FFFF]')


class AXMLPrinter:
    """
    Converter for a decoded :class:`~pyapkinfo.axmlparser.AxmlDocument`
    into a lxml ElementTree, which can easily be converted into XML.

    A Reference Implementation can be found at http://androidxref.com/9.0.0_r3/
    xref/frameworks/base/tools/aapt/XMLNode.cpp
    """
    def __init__(self, document):
        self.document = document
        self.root = None
        self.packerwarning = False

        # prefix/uri string indices of the namespace mappings currently open
        namespaces = []
        cur = []

        for chunk in document.chunks:
            if chunk.type == const.RES_XML_START_NAMESPACE_TYPE:
                namespaces.append((chunk.prefix, chunk.uri))

            elif chunk.type == const.RES_XML_END_NAMESPACE_TYPE:
                if (chunk.prefix, chunk.uri) in namespaces:
                    namespaces.remove((chunk.prefix, chunk.uri))
                else:
                    log.warning("Reached a NAMESPACE_END without having the namespace stored before?")

            elif chunk.type == const.RES_XML_START_ELEMENT_TYPE:
                name = self._fix_name(document.get_tag_name(chunk))
                tag = "{}{}".format(self._print_namespace(document.get_string(chunk.namespace_uri)), name)

                log.debug("START_TAG: {} (line={})".format(tag, chunk.line))
                elem = etree.Element(tag, nsmap=self._nsmap(namespaces))

                for attribute in chunk.attributes:
                    uri = self._print_namespace(document.get_attribute_namespace(attribute))
                    name = self._fix_name(document.get_attribute_name(attribute))
                    value = self._fix_value(document.format_attribute(attribute))

                    if "{}{}".format(uri, name) in elem.attrib:
                        log.warning("Duplicate attribute '{}{}'! Will overwrite!".format(uri, name))
                    elem.set("{}{}".format(uri, name), value)

                if self.root is None:
                    self.root = elem
                else:
                    if not cur:
                        # looks like we lost the root?
                        log.error("No more elements available to attach to! Is the XML malformed?")
                        break
                    cur[-1].append(elem)
                cur.append(elem)

            elif chunk.type == const.RES_XML_END_ELEMENT_TYPE:
                if not cur:
                    log.warning("Too many END_TAG! No more elements available to attach to!")
                    continue
                cur.pop()

            elif chunk.type == const.RES_XML_CDATA_TYPE:
                if cur:
                    cur[-1].text = self._fix_value(document.get_string(chunk.data))

        if namespaces:
            log.warning("Not all namespace mappings were closed! Malformed AXML?")

    def _nsmap(self, namespaces):
        """
        Returns the current namespace mapping as a dictionary

        Empty prefixes and URIs are left out, for an URI mapped by many
        prefixes the last one wins.
        """
        nsmap = dict()
        for k, v in namespaces:
            s_prefix = self.document.get_string(k) if k != 0xFFFFFFFF else ""
            s_uri = self.document.get_string(v)
            if s_uri != "" and s_prefix != "":
                nsmap[s_prefix] = s_uri.strip()
        return nsmap

    def get_xml(self, pretty=True):
        """
        Get the XML as an UTF-8 string

        :returns: bytes encoded as UTF-8
        """
        if self.root is None:
            return b""
        return etree.tostring(self.root, encoding="utf-8", pretty_print=pretty)

    def get_xml_obj(self):
        """
        Get the XML as an ElementTree object

        :returns: :class:`lxml.etree.Element`
        """
        return self.root

    def is_packed(self):
        """
        Returns True if the AXML is likely to be packed

        Packers do some weird stuff and we try to detect it.
        Sometimes the files are not packed but simply broken or compiled with
        some broken version of a tool.

        :returns: True if packer detected, False otherwise
        """
        return self.packerwarning

    def _fix_name(self, name):
        """
        Apply some fixes to element named and attribute names.
        Try to get conform to:
        > Like element names, attribute names are case-sensitive and must start with a letter or underscore.
        > The rest of the name can contain letters, digits, hyphens, underscores, and periods.

        :param name: Name of the attribute
        :return: a fixed version of the name
        """
        if not name:
            self.packerwarning = True
            return "_"
        if not name[0].isalpha() and name[0] != "_":
            log.warning("Invalid start for name '{}'".format(name))
            self.packerwarning = True
            name = "_{}".format(name)
        if name.startswith("android:"):
            # Seems be a common thing...
            # Actually this means that the Manifest is likely to be broken, as
            # usually no namespace URI is set in this case.
            log.warning(
                "Name '{}' starts with 'android:' prefix! "
                "The Manifest seems to be broken? Removing prefix.".format(name))
            self.packerwarning = True
            name = name[len("android:"):]
        if not re.match(r"^[a-zA-Z0-9._-]*$", name):
            log.warning("Name '{}' contains invalid characters!".format(name))
            self.packerwarning = True
            name = re.sub(r"[^a-zA-Z0-9._-]", "_", name)

        return name

    def _fix_value(self, value):
        """
        Return a cleaned version of a value
        according to the specification:
        > Char	   ::=   	#x9 | #xA | #xD | [#x20-#xD7FF] | [#xE000-#xFFFD] | [#x10000-#x10FFFF]

        See https://www.w3.org/TR/xml/#charsets

        :param value: a value to clean
        :return: the cleaned value
        """
        # Reading string until \x00. This is the same as aapt does.
        if "\x00" in value:
            self.packerwarning = True
            log.warning(
                "Null byte found in attribute value at position {}: "
                "Value(hex): '{}'".format(
                    value.find("\x00"),
                    binascii.hexlify(value.encode("utf-8"))))
            value = value[:value.find("\x00")]

        if not _CHARRANGE.match(value):
            log.warning("Invalid character in value found. Replacing with '_'.")
            self.packerwarning = True
            value = _REPLACEMENT.sub('_', value)
        return value

    def _print_namespace(self, uri):
        if uri != "":
            uri = "{{{}}}".format(uri.strip())
        return uri
