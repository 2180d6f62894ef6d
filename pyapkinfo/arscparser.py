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
from collections import OrderedDict

import pyapkinfo.constants as const
from pyapkinfo import bytecode
from pyapkinfo.arscutil import ARSCHeader, ARSCResTablePackage, ARSCResTypeSpec, ARSCResType
from pyapkinfo.exceptions import ArscFormatError, NotFoundError, ResParserError
from pyapkinfo.stringblock import StringBlock

log = logging.getLogger("pyapkinfo.arscparser")

# References pointing to references are followed this many times
MAX_REFERENCE_DEPTH = 8


def split_id(res_id):
    """
    Split a resource id into (package id, type id, entry index)
    """
    return (res_id >> 24) & 0xff, (res_id >> 16) & 0xff, res_id & 0xffff


class ResourcePackage(object):
    """
    A package of the resource table with its type and key string pools
    and all type chunks, grouped by type id in declaration order.
    """
    def __init__(self, package, mTableStrings, mKeyStrings):
        self.id = package.id
        self.name = package.get_name()
        self.mTableStrings = mTableStrings
        self.mKeyStrings = mKeyStrings
        self.types = OrderedDict()

    def add_type(self, res_type):
        self.types.setdefault(res_type.id, []).append(res_type)

    def __repr__(self):
        return "<ResourcePackage id='0x{:02x}' name='{}' types='{}'>".format(
            self.id, self.name, len(self.types))


class ARSCParser(object):
    """
    Parser for resource.arsc files

    The table is read once on construction, any structural error raises
    :class:`~pyapkinfo.exceptions.ArscFormatError`.
    Use :meth:`resolve` to look up the value of a resource id.
    """
    def __init__(self, raw_buff):
        self.buff = bytecode.BuffHandle(raw_buff)
        self.stringpool_main = None
        self.packages = OrderedDict()

        try:
            self._parse()
        except ArscFormatError:
            raise
        except ResParserError as e:
            log.error("Error parsing resource table: %s", e)
            raise ArscFormatError(e.message, offset=e.offset, chunk_type=e.chunk_type)

    def _parse(self):
        self.header = ARSCHeader(self.buff)
        if self.header.type != const.RES_TABLE_TYPE:
            raise ArscFormatError(
                "Expected a resource table, got resource type 0x{:04x}".format(self.header.type),
                offset=self.header.start, chunk_type=self.header.type)
        if self.header.header_size < ARSCHeader.SIZE + 4:
            raise ArscFormatError(
                "Table header is too small: {}".format(self.header.header_size),
                offset=self.header.start, chunk_type=self.header.type)

        self.packageCount, = self.buff.unpack('<I')

        if self.header.end < self.buff.size():
            log.warning("Declared table size ({}) is smaller than total file size ({})".format(
                self.header.size, self.buff.size()))

        # skip to the start of the first chunk data, skipping trailing header bytes
        self.buff.set_idx(self.header.start + self.header.header_size)

        # Gives the offset inside the file of the end of this chunk
        data_end = self.header.end

        while self.buff.get_idx() < data_end:
            res_header = ARSCHeader(self.buff, parent_end=data_end)

            if res_header.type == const.RES_STRING_POOL_TYPE:
                if self.stringpool_main is None:
                    self.stringpool_main = StringBlock(self.buff, res_header)
                else:
                    log.warning("Found a second global string pool, ignoring it")

            elif res_header.type == const.RES_TABLE_PACKAGE_TYPE:
                if len(self.packages) >= self.packageCount:
                    raise ArscFormatError(
                        "Got more packages than the {} declared".format(self.packageCount),
                        offset=res_header.start, chunk_type=res_header.type)
                package = self._parse_package(res_header)
                if package.id in self.packages:
                    log.warning("Package id 0x{:02x} is declared twice, using the first one".format(package.id))
                else:
                    self.packages[package.id] = package

            else:
                log.warning("Skipping unknown chunk in resource table: {}".format(res_header))

            # move to the next resource chunk
            self.buff.set_idx(res_header.end)

        if self.stringpool_main is None:
            raise ArscFormatError("Resource table has no global string pool", offset=self.header.start,
                                  chunk_type=self.header.type)

    def _read_string_pool(self, package_header, offset):
        if offset < package_header.header_size or offset >= package_header.size:
            raise ArscFormatError(
                "String pool offset 0x{:x} is outside of the package".format(offset),
                offset=package_header.start, chunk_type=package_header.type)

        self.buff.set_idx(package_header.start + offset)
        sp_header = ARSCHeader(self.buff, parent_end=package_header.end)
        if sp_header.type != const.RES_STRING_POOL_TYPE:
            raise ArscFormatError(
                "Expected String Pool header, got resource type 0x{:04x}".format(sp_header.type),
                offset=sp_header.start, chunk_type=sp_header.type)
        return StringBlock(self.buff, sp_header)

    def _parse_package(self, res_header):
        current_package = ARSCResTablePackage(self.buff, res_header)

        # The resource type symbol table and the resource key symbol table
        mTableStrings = self._read_string_pool(res_header, current_package.typeStrings)
        mKeyStrings = self._read_string_pool(res_header, current_package.keyStrings)

        package = ResourcePackage(current_package, mTableStrings, mKeyStrings)
        log.debug("Found package {}".format(package))

        # Read all other headers, the two string pools are skipped by their size
        self.buff.set_idx(res_header.start + res_header.header_size)
        while self.buff.get_idx() < res_header.end:
            pkg_chunk_header = ARSCHeader(self.buff, parent_end=res_header.end)
            log.debug("Found a header: {}".format(pkg_chunk_header))

            if pkg_chunk_header.type == const.RES_TABLE_TYPE_SPEC_TYPE:
                # only validated, the flags are not needed to resolve values
                ARSCResTypeSpec(self.buff, pkg_chunk_header)

            elif pkg_chunk_header.type == const.RES_TABLE_TYPE_TYPE:
                a_res_type = ARSCResType(self.buff, pkg_chunk_header, package.id)
                package.add_type(a_res_type)
                log.debug("Config: {}".format(a_res_type.config))

            elif pkg_chunk_header.type == const.RES_TABLE_LIBRARY_TYPE:
                log.info("RES_TABLE_LIBRARY_TYPE chunk is not supported, skipping it")

            elif pkg_chunk_header.type != const.RES_STRING_POOL_TYPE:
                log.debug("Skipping chunk type 0x{:04x} in package".format(pkg_chunk_header.type))

            # skip to the next chunk
            self.buff.set_idx(pkg_chunk_header.end)

        return package

    def get_resource_name(self, res_id):
        """
        Return the XML name `type/key` of a resource id or None if it can not be found
        """
        package_id, type_id, entry_index = split_id(res_id)
        package = self.packages.get(package_id)
        if package is None or not package.types.get(type_id):
            return None
        try:
            entry = self._select_type(package.types[type_id]).get_entry(entry_index)
            if entry is None:
                return None
            return "{}/{}".format(package.mTableStrings.getString(type_id - 1),
                                  package.mKeyStrings.getString(entry.get_index()))
        except ResParserError:
            return None

    @staticmethod
    def _select_type(candidates):
        """
        Select the configuration variant which is used to resolve an id.

        The default configuration wins, then the first variant without locale
        and density qualifiers, then the first variant in declaration order.
        The entry is only looked up in the selected variant.
        """
        for res_type in candidates:
            if res_type.config.is_default():
                return res_type

        for res_type in candidates:
            if res_type.config.is_unqualified():
                return res_type

        log.warning("No default resource config could be found for the given rid, using fallback '{}'!".format(
            candidates[0].config.get_qualifier()))
        return candidates[0]

    def resolve(self, res_id):
        """
        Resolve a resource id to its string value

        :param res_id: resource id as int
        :return: str
        :raises NotFoundError: if the id can not be resolved to a simple value
        :raises ArscFormatError: if the entry of the id is malformed
        """
        if not isinstance(res_id, int):
            raise ValueError("'res_id' must be an int")

        seen = []
        while True:
            if res_id in seen:
                raise NotFoundError("Reference loop while resolving 0x{:08x}".format(seen[0]))
            if len(seen) > MAX_REFERENCE_DEPTH:
                raise NotFoundError("Too many references while resolving 0x{:08x}".format(seen[0]))
            seen.append(res_id)

            value = self._get_value(res_id)
            if value.is_reference():
                log.debug("0x{:08x} references 0x{:08x}".format(res_id, value.data))
                res_id = value.data
                continue

            if value.is_string():
                if not self.stringpool_main.is_valid_index(value.data):
                    raise NotFoundError("String index {} of 0x{:08x} is out of range".format(value.data, res_id))
                try:
                    return self.stringpool_main.getString(value.data)
                except ResParserError as e:
                    raise ArscFormatError(e.message, offset=e.offset, chunk_type=e.chunk_type)

            if value.data_type == const.TYPE_NULL:
                raise NotFoundError("Resource 0x{:08x} has a null value".format(res_id))

            return value.format_value()

    def _get_value(self, res_id):
        package_id, type_id, entry_index = split_id(res_id)

        package = self.packages.get(package_id)
        if package is None:
            raise NotFoundError("No package with id 0x{:02x} for 0x{:08x}".format(package_id, res_id))

        candidates = package.types.get(type_id)
        if not candidates:
            raise NotFoundError("No type with id 0x{:02x} for 0x{:08x}".format(type_id, res_id))

        res_type = self._select_type(candidates)
        try:
            entry = res_type.get_entry(entry_index)
        except ResParserError as e:
            raise ArscFormatError(e.message, offset=e.offset, chunk_type=e.chunk_type)

        if entry is None:
            raise NotFoundError("No entry 0x{:04x} in configuration '{}' for 0x{:08x}".format(
                entry_index, res_type.config.get_qualifier(), res_id))

        if entry.is_complex():
            raise NotFoundError("Resource 0x{:08x} is a complex value".format(res_id))

        return entry.key


def parse(raw_buff):
    """
    Decode a resources.arsc file

    :param raw_buff: the content of the file as bytes
    :return: :class:`ARSCParser`
    :raises ArscFormatError: if the table is malformed
    """
    return ARSCParser(raw_buff)
