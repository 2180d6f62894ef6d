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

from struct import calcsize, unpack

from pyapkinfo.exceptions import BufferUnderrunError


class BuffHandle(object):
    """
    Read cursor over an immutable buffer.

    Every read is checked against the buffer size, a short read raises
    :class:`~pyapkinfo.exceptions.BufferUnderrunError` instead of returning
    less data than requested.
    """

    def __init__(self, buff):
        if buff is None:
            buff = b""
        self.__buff = bytes(buff)
        self.__idx = 0

    def size(self):
        return len(self.__buff)

    def set_idx(self, idx):
        if idx < 0 or idx > len(self.__buff):
            raise BufferUnderrunError(
                "Can not seek outside of the buffer (size={})".format(len(self.__buff)), offset=idx)
        self.__idx = idx

    def get_idx(self):
        return self.__idx

    def read_at(self, offset, size):
        if size < 0 or offset < 0 or offset + size > len(self.__buff):
            raise BufferUnderrunError(
                "Can not read {} bytes over the buffer size of {}".format(size, len(self.__buff)),
                offset=offset)
        return self.__buff[offset: offset + size]

    def read(self, size):
        buff = self.read_at(self.__idx, size)
        self.__idx += size
        return buff

    def unpack(self, fmt):
        """
        Read and unpack a struct at the current position

        :param fmt: a :mod:`struct` format string
        :return: tuple of the unpacked values
        """
        return unpack(fmt, self.read(calcsize(fmt)))

    def end(self):
        return self.__idx == len(self.__buff)
