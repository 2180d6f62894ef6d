"""
Build binary XML files, resource tables and APKs in memory, byte by byte.
"""
import io
import zipfile
from collections import namedtuple
from struct import pack

import pyapkinfo.constants as const

NO_INDEX = 0xFFFFFFFF

Element = namedtuple("Element", "name attributes children")
Element.__new__.__defaults__ = ((), ())

# A resource id as attribute or entry value
Ref = namedtuple("Ref", "res_id")

# Any other typed value
Typed = namedtuple("Typed", "data_type data")

# A map entry of a resource type
Complex = namedtuple("Complex", "parent")
Complex.__new__.__defaults__ = (0,)

# An entry written in the compact layout
Compact = namedtuple("Compact", "data_type data")

# entries maps the entry index to (key, value)
TypeChunk = namedtuple("TypeChunk", "type_id entries locale density sparse entry_count")
TypeChunk.__new__.__defaults__ = (b"", 0, False, None)

TYPE_NAMES = ("attr", "drawable", "mipmap", "layout", "color", "dimen", "id", "style", "integer", "string")
STRING_TYPE_ID = 0x0a


def chunk(chunk_type, header_size, payload):
    """
    Prepend a ResChunk_header, `payload` holds the rest of the header and the data
    """
    return pack('<HHL', chunk_type, header_size, 8 + len(payload)) + payload


def _len8(n):
    if n > 0x7f:
        return pack('<BB', (n >> 8) | 0x80, n & 0xff)
    return pack('<B', n)


def _len16(n):
    if n > 0x7fff:
        return pack('<HH', (n >> 16) | 0x8000, n & 0xffff)
    return pack('<H', n)


def string_pool(strings, utf8=False):
    data = b""
    offsets = []
    for s in strings:
        offsets.append(len(data))
        if utf8:
            encoded = s.encode("utf-8")
            data += _len8(len(s)) + _len8(len(encoded)) + encoded + b"\x00"
        else:
            encoded = s.encode("utf-16-le")
            data += _len16(len(encoded) // 2) + encoded + b"\x00\x00"
    data += b"\x00" * (-len(data) % 4)

    strings_offset = const.STRING_POOL_HEADER_SIZE + 4 * len(strings) if strings else 0
    flags = const.UTF8_FLAG if utf8 else 0
    payload = pack('<5I', len(strings), 0, flags, strings_offset, 0)
    payload += pack('<{}I'.format(len(strings)), *offsets) + data
    return chunk(const.RES_STRING_POOL_TYPE, const.STRING_POOL_HEADER_SIZE, payload)


class AxmlWriter(object):
    """
    Serialize a tree of :class:`Element` into a binary XML file

    Attributes named like an android system attribute get the android
    namespace and a resource map entry.
    """
    def __init__(self, root, utf8=False, namespace=True):
        self.root = root
        self.utf8 = utf8
        self.namespace = namespace
        self.strings = []
        self.line = 1

        system = []
        for element in self._walk(root):
            for name, _ in element.attributes:
                if name in const.SYSTEM_ATTRIBUTES and name not in system:
                    system.append(name)
        for name in system:
            self.add_string(name)
        self.resource_ids = [const.SYSTEM_ATTRIBUTES[name] for name in system]

    def _walk(self, element):
        yield element
        for child in element.children:
            for e in self._walk(child):
                yield e

    def add_string(self, s):
        if s not in self.strings:
            self.strings.append(s)
        return self.strings.index(s)

    def _node(self, chunk_type, body):
        self.line += 1
        return chunk(chunk_type, const.XML_NODE_HEADER_SIZE, pack('<LL', self.line, NO_INDEX) + body)

    def _attribute(self, name, value):
        if name in const.SYSTEM_ATTRIBUTES and self.namespace:
            ns = self.add_string(const.NS_ANDROID_URI)
        else:
            ns = NO_INDEX
        name_idx = self.add_string(name)

        if isinstance(value, str):
            raw = self.add_string(value)
            typed = (const.TYPE_STRING, raw)
        elif isinstance(value, bool):
            raw = NO_INDEX
            typed = (const.TYPE_INT_BOOLEAN, 0xFFFFFFFF if value else 0)
        elif isinstance(value, int):
            raw = NO_INDEX
            typed = (const.TYPE_INT_DEC, value & 0xFFFFFFFF)
        elif isinstance(value, Ref):
            raw = NO_INDEX
            typed = (const.TYPE_REFERENCE, value.res_id)
        else:
            raw = NO_INDEX
            typed = (value.data_type, value.data)

        return pack('<LLL', ns, name_idx, raw) + pack('<HBBI', const.RES_VALUE_SIZE, 0, typed[0], typed[1])

    def _element(self, element):
        name = self.add_string(element.name)
        attributes = b"".join(self._attribute(n, v) for n, v in element.attributes)
        body = pack('<LL6H', NO_INDEX, name, const.ATTRIBUTE_SIZE, const.ATTRIBUTE_SIZE,
                    len(element.attributes), 0, 0, 0) + attributes
        nodes = self._node(const.RES_XML_START_ELEMENT_TYPE, body)
        for child in element.children:
            nodes += self._element(child)
        nodes += self._node(const.RES_XML_END_ELEMENT_TYPE, pack('<LL', NO_INDEX, name))
        return nodes

    def build(self):
        nodes = b""
        if self.namespace:
            prefix = self.add_string("android")
            uri = self.add_string(const.NS_ANDROID_URI)
            nodes += self._node(const.RES_XML_START_NAMESPACE_TYPE, pack('<LL', prefix, uri))
        nodes += self._element(self.root)
        if self.namespace:
            nodes += self._node(const.RES_XML_END_NAMESPACE_TYPE, pack('<LL', prefix, uri))

        body = string_pool(self.strings, utf8=self.utf8)
        if self.resource_ids:
            body += chunk(const.RES_XML_RESOURCE_MAP_TYPE, const.CHUNK_HEADER_SIZE,
                          pack('<{}L'.format(len(self.resource_ids)), *self.resource_ids))
        body += nodes
        return chunk(const.RES_XML_TYPE, const.CHUNK_HEADER_SIZE, body)


def build_axml(root, **kwargs):
    return AxmlWriter(root, **kwargs).build()


def manifest_tree(package="com.acme.app", version_name="1.2.3", version_code=45, label="Acme"):
    """
    <manifest> with an <application>, attributes set to None are left out
    """
    attributes = [("versionCode", version_code), ("versionName", version_name), ("package", package)]
    manifest_attributes = tuple((n, v) for n, v in attributes if v is not None)
    app_attributes = (("label", label),) if label is not None else ()
    return Element("manifest", manifest_attributes, (
        Element("uses-sdk", (("minSdkVersion", 21),)),
        Element("application", app_attributes, (
            Element("activity", (("name", ".MainActivity"),)),
        )),
    ))


def build_manifest(**kwargs):
    return build_axml(manifest_tree(**kwargs))


def config(locale=b"", density=0):
    """
    A 64 byte ResTable_config, `locale` is language and region, e.g. b"deDE"
    """
    raw = pack('<II4sBBH', 64, 0, locale.ljust(4, b"\x00"), 0, 0, density)
    return raw + b"\x00" * (64 - len(raw))


class ArscWriter(object):
    """
    Serialize a resource table with a single package

    :param types: list of :class:`TypeChunk`
    """
    def __init__(self, types, package_id=0x7f, package_name="com.acme.app"):
        self.types = types
        self.package_id = package_id
        self.package_name = package_name
        self.values = []
        self.keys = []

    def _index(self, pool, s):
        if s not in pool:
            pool.append(s)
        return pool.index(s)

    def _entry(self, key, value):
        key_idx = self._index(self.keys, key)
        if isinstance(value, Complex):
            return pack('<HHI', 16, 0x0001, key_idx) + pack('<II', value.parent, 0)
        if isinstance(value, Compact):
            return pack('<HHI', key_idx, 0x0008 | (value.data_type << 8), value.data)

        if isinstance(value, str):
            typed = (const.TYPE_STRING, self._index(self.values, value))
        elif isinstance(value, Ref):
            typed = (const.TYPE_REFERENCE, value.res_id)
        elif isinstance(value, int):
            typed = (const.TYPE_INT_DEC, value & 0xFFFFFFFF)
        else:
            typed = (value.data_type, value.data)
        return pack('<HHI', 8, 0, key_idx) + pack('<HBBI', const.RES_VALUE_SIZE, 0, typed[0], typed[1])

    def _type_chunk(self, res_type):
        entry_count = res_type.entry_count
        if entry_count is None:
            entry_count = max(res_type.entries) + 1 if res_type.entries else 0

        data = b""
        offsets = []
        for index in sorted(res_type.entries):
            offsets.append((index, len(data)))
            key, value = res_type.entries[index]
            data += self._entry(key, value)

        if res_type.sparse:
            array = b"".join(pack('<HH', index, offset // 4) for index, offset in offsets)
            count = len(offsets)
            flags = const.TYPE_FLAG_SPARSE
        else:
            by_index = dict(offsets)
            array = b"".join(pack('<I', by_index.get(i, const.NO_ENTRY)) for i in range(entry_count))
            count = entry_count
            flags = 0

        header_size = const.TABLE_TYPE_HEADER_SIZE + 64
        entries_start = header_size + len(array)
        payload = pack('<BBHII', res_type.type_id, flags, 0, count, entries_start)
        payload += config(res_type.locale, res_type.density) + array + data
        return chunk(const.RES_TABLE_TYPE_TYPE, header_size, payload)

    def _type_spec(self, type_id, entry_count):
        payload = pack('<BBHI', type_id, 0, 0, entry_count) + b"\x00\x00\x00\x00" * entry_count
        return chunk(const.RES_TABLE_TYPE_SPEC_TYPE, 16, payload)

    def _package(self):
        type_chunks = b""
        seen = []
        for res_type in self.types:
            if res_type.type_id not in seen:
                seen.append(res_type.type_id)
                count = max([max(t.entries) + 1 for t in self.types
                             if t.type_id == res_type.type_id and t.entries] or [0])
                type_chunks += self._type_spec(res_type.type_id, count)
            type_chunks += self._type_chunk(res_type)

        type_strings = string_pool(list(TYPE_NAMES))
        key_strings = string_pool(self.keys, utf8=True)

        header_size = const.TABLE_PACKAGE_HEADER_SIZE
        name = self.package_name.encode("utf-16-le").ljust(256, b"\x00")
        payload = pack('<I', self.package_id) + name
        payload += pack('<4I', header_size, len(TYPE_NAMES), header_size + len(type_strings), len(self.keys))
        payload += type_strings + key_strings + type_chunks
        return chunk(const.RES_TABLE_PACKAGE_TYPE, header_size, payload)

    def build(self):
        # the package is built first, it fills the global string pool
        package = self._package()
        body = pack('<I', 1) + string_pool(self.values, utf8=True) + package
        return chunk(const.RES_TABLE_TYPE, 12, body)


def build_arsc(types, **kwargs):
    return ArscWriter(types, **kwargs).build()


def string_id(index, package_id=0x7f):
    return (package_id << 24) | (STRING_TYPE_ID << 16) | index


def build_apk(files, compression=zipfile.ZIP_DEFLATED):
    """
    Zip a dict of name to bytes into an APK

    :return: bytes
    """
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", compression=compression) as z:
        for name, data in files.items():
            z.writestr(name, data)
    return out.getvalue()


def write_apk(path, files, **kwargs):
    with open(str(path), "wb") as f:
        f.write(build_apk(files, **kwargs))
    return str(path)
