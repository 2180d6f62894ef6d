from struct import unpack, pack

import pyapkinfo.constants as const


NS_ANDROID_URI = const.NS_ANDROID_URI
NS_ANDROID = '{{{}}}'.format(NS_ANDROID_URI)


def complexToFloat(xcomplex):
    return float(xcomplex & 0xFFFFFF00) * const.RADIX_MULTS[(xcomplex >> 4) & 3]


def long2int(input_l):
    if input_l > 0x7fffffff:
        input_l = (0x7fffffff & input_l) - 0x80000000
    return input_l


def getPackage(i):
    if i >> 24 == 1:
        return "android:"
    return ""


def format_value(_type, _data, lookup_string=lambda ix: "<string>"):
    """
    Format a typed value the same way `aapt dump xmltree` prints it

    :param _type: the data type of the `Res_value`
    :param _data: the raw 32 bit data
    :param lookup_string: function to resolve a string pool index
    :return: str
    """
    if _type == const.TYPE_STRING:
        return lookup_string(_data)

    elif _type == const.TYPE_ATTRIBUTE:
        return "?%s%08X" % (getPackage(_data), _data)

    elif _type == const.TYPE_REFERENCE:
        return "@%s%08X" % (getPackage(_data), _data)

    elif _type == const.TYPE_FLOAT:
        return "%f" % unpack("=f", pack("=L", _data))[0]

    elif _type == const.TYPE_INT_HEX:
        return "0x%08X" % _data

    elif _type == const.TYPE_INT_BOOLEAN:
        if _data == 0:
            return "false"
        return "true"

    elif _type == const.TYPE_DIMENSION:
        unit = _data & const.COMPLEX_UNIT_MASK
        if unit < len(const.DIMENSION_UNITS):
            return "%f%s" % (complexToFloat(_data), const.DIMENSION_UNITS[unit])

    elif _type == const.TYPE_FRACTION:
        unit = _data & const.COMPLEX_UNIT_MASK
        if unit < len(const.FRACTION_UNITS):
            return "%f%s" % (complexToFloat(_data) * 100, const.FRACTION_UNITS[unit])

    elif const.TYPE_FIRST_COLOR_INT <= _type <= const.TYPE_LAST_COLOR_INT:
        return "#%08X" % _data

    elif const.TYPE_FIRST_INT <= _type <= const.TYPE_LAST_INT:
        return "%d" % long2int(_data)

    return "<0x%X, type 0x%02X>" % (_data, _type)

