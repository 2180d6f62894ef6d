# Constants for ARSC and AXML files
# see http://androidxref.com/9.0.0_r3/xref/frameworks/base/libs/androidfw/include/androidfw/ResourceTypes.h#233

# ResChunk_header types
RES_NULL_TYPE = 0x0000
RES_STRING_POOL_TYPE = 0x0001
RES_TABLE_TYPE = 0x0002
RES_XML_TYPE = 0x0003

# Chunk types in RES_XML_TYPE
RES_XML_FIRST_CHUNK_TYPE = 0x0100
RES_XML_START_NAMESPACE_TYPE = 0x0100
RES_XML_END_NAMESPACE_TYPE = 0x0101
RES_XML_START_ELEMENT_TYPE = 0x0102
RES_XML_END_ELEMENT_TYPE = 0x0103
RES_XML_CDATA_TYPE = 0x0104
RES_XML_LAST_CHUNK_TYPE = 0x017f

# This contains a uint32_t array mapping strings in the string
# pool back to resource identifiers.  It is optional.
RES_XML_RESOURCE_MAP_TYPE = 0x0180

# Chunk types in RES_TABLE_TYPE
RES_TABLE_PACKAGE_TYPE = 0x0200
RES_TABLE_TYPE_TYPE = 0x0201
RES_TABLE_TYPE_SPEC_TYPE = 0x0202
RES_TABLE_LIBRARY_TYPE = 0x0203

CHUNK_NAMES = {
    RES_NULL_TYPE: "NULL",
    RES_STRING_POOL_TYPE: "STRING_POOL",
    RES_TABLE_TYPE: "TABLE",
    RES_XML_TYPE: "XML",
    RES_XML_START_NAMESPACE_TYPE: "XML_START_NAMESPACE",
    RES_XML_END_NAMESPACE_TYPE: "XML_END_NAMESPACE",
    RES_XML_START_ELEMENT_TYPE: "XML_START_ELEMENT",
    RES_XML_END_ELEMENT_TYPE: "XML_END_ELEMENT",
    RES_XML_CDATA_TYPE: "XML_CDATA",
    RES_XML_RESOURCE_MAP_TYPE: "XML_RESOURCE_MAP",
    RES_TABLE_PACKAGE_TYPE: "TABLE_PACKAGE",
    RES_TABLE_TYPE_TYPE: "TABLE_TYPE",
    RES_TABLE_TYPE_SPEC_TYPE: "TABLE_TYPE_SPEC",
    RES_TABLE_LIBRARY_TYPE: "TABLE_LIBRARY",
}

# Flags in the STRING Section
UTF8_FLAG = 1 << 8

# Sizes of the fixed headers
CHUNK_HEADER_SIZE = 8
STRING_POOL_HEADER_SIZE = 0x1C
XML_NODE_HEADER_SIZE = 0x10
# ResXMLTree_attribute: ns, name, rawValue, Res_value (size, res0, dataType, data)
ATTRIBUTE_SIZE = 0x14
RES_VALUE_SIZE = 0x08
# ResTable_package without typeIdOffset
TABLE_PACKAGE_HEADER_SIZE = 0x11C
TABLE_TYPE_HEADER_SIZE = 0x14

# Type of the data value
TYPE_NULL = 0x00
TYPE_REFERENCE = 0x01
TYPE_ATTRIBUTE = 0x02
TYPE_STRING = 0x03
TYPE_FLOAT = 0x04
TYPE_DIMENSION = 0x05
TYPE_FRACTION = 0x06
TYPE_DYNAMIC_REFERENCE = 0x07
TYPE_DYNAMIC_ATTRIBUTE = 0x08
TYPE_FIRST_INT = 0x10
TYPE_INT_DEC = 0x10
TYPE_INT_HEX = 0x11
TYPE_INT_BOOLEAN = 0x12
TYPE_FIRST_COLOR_INT = 0x1c
TYPE_INT_COLOR_ARGB8 = 0x1c
TYPE_INT_COLOR_RGB8 = 0x1d
TYPE_INT_COLOR_ARGB4 = 0x1e
TYPE_INT_COLOR_RGB4 = 0x1f
TYPE_LAST_COLOR_INT = 0x1f
TYPE_LAST_INT = 0x1f

TYPE_TABLE = {
    TYPE_NULL: "null",
    TYPE_REFERENCE: "reference",
    TYPE_ATTRIBUTE: "attribute",
    TYPE_STRING: "string",
    TYPE_FLOAT: "float",
    TYPE_DIMENSION: "dimension",
    TYPE_FRACTION: "fraction",
    TYPE_DYNAMIC_REFERENCE: "dynamic reference",
    TYPE_DYNAMIC_ATTRIBUTE: "dynamic attribute",
    TYPE_INT_DEC: "int",
    TYPE_INT_HEX: "hex",
    TYPE_INT_BOOLEAN: "boolean",
    TYPE_INT_COLOR_ARGB8: "argb8",
    TYPE_INT_COLOR_RGB8: "rgb8",
    TYPE_INT_COLOR_ARGB4: "argb4",
    TYPE_INT_COLOR_RGB4: "rgb4",
}

RADIX_MULTS = [0.00390625, 3.051758E-005, 1.192093E-007, 4.656613E-010]
DIMENSION_UNITS = ["px", "dip", "sp", "pt", "in", "mm"]
FRACTION_UNITS = ["%", "%p"]

COMPLEX_UNIT_MASK = 0x0F

# ResTable_type flags
TYPE_FLAG_SPARSE = 0x01
TYPE_FLAG_OFFSET16 = 0x02

# Value of an absent entry in the entry offset array
NO_ENTRY = 0xFFFFFFFF
NO_ENTRY16 = 0xFFFF

# ResTable_config
DENSITY_DEFAULT = 0
DENSITY_LOW = 120
DENSITY_MEDIUM = 160
DENSITY_TV = 213
DENSITY_HIGH = 240
DENSITY_XHIGH = 320
DENSITY_XXHIGH = 480
DENSITY_XXXHIGH = 640
DENSITY_ANY = 0xfffe
DENSITY_NONE = 0xffff

DENSITY_NAMES = {
    DENSITY_LOW: "ldpi",
    DENSITY_MEDIUM: "mdpi",
    DENSITY_TV: "tvdpi",
    DENSITY_HIGH: "hdpi",
    DENSITY_XHIGH: "xhdpi",
    DENSITY_XXHIGH: "xxhdpi",
    DENSITY_XXXHIGH: "xxxhdpi",
    DENSITY_ANY: "anydpi",
    DENSITY_NONE: "nodpi",
}

MASK_LAYOUTDIR = 0xC0
LAYOUTDIR_LTR = 0x40
LAYOUTDIR_RTL = 0x80

# System attributes from android.R.attr which the extractor looks up.
# Obfuscated manifests may strip the attribute names from the string pool,
# in that case only the resource map identifies them.
SYSTEM_ATTRIBUTES = {
    "label": 0x01010001,
    "icon": 0x01010002,
    "name": 0x01010003,
    "versionCode": 0x0101021b,
    "versionName": 0x0101021c,
    "minSdkVersion": 0x0101020c,
    "targetSdkVersion": 0x01010270,
}
SYSTEM_ATTRIBUTES_INVERSE = {v: k for k, v in SYSTEM_ATTRIBUTES.items()}

NS_ANDROID_URI = 'http://schemas.android.com/apk/res/android'
