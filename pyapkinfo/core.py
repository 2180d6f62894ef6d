import logging
import re
from collections import namedtuple

import pyapkinfo.constants as const
from pyapkinfo import arscparser, axmlparser
from pyapkinfo.archive import MAX_ENTRY_SIZE, ArchiveReader
from pyapkinfo.axmlprinter import AXMLPrinter
from pyapkinfo.exceptions import (
    ArchiveError, ArscFormatError, AxmlFormatError, ExtractionError,
    InvalidApkError, NotFoundError
)
from pyapkinfo.utils import long2int

log = logging.getLogger("pyapkinfo.core")

MANIFEST = "AndroidManifest.xml"
RESOURCES = "resources.arsc"

ENVIRONMENT_KEYS = (
    ("package_name", "ANDROID_APP_PACKAGE_NAME"),
    ("app_name", "ANDROID_APP_NAME"),
    ("version_name", "ANDROID_APP_VERSION_NAME"),
    ("version_code", "ANDROID_APP_VERSION_CODE"),
)

_INTEGER = re.compile(r"^[+-]?[0-9]+$")


class APKInfo(namedtuple("APKInfo", "package_name app_name version_name version_code")):
    """
    The identity of an APK. All fields are strings and always set.
    """
    __slots__ = ()

    def as_dict(self):
        return dict(self._asdict())

    def as_environment(self):
        """
        Return the fields keyed by the environment variable names used by build pipelines
        """
        return dict((key, getattr(self, field)) for field, key in ENVIRONMENT_KEYS)


class InfoExtractor(object):
    """
    Reads the identity of an APK from its AndroidManifest.xml and,
    for labels given as resource ids, from its resources.arsc

    example::

        with ArchiveReader("myfile.apk") as archive:
            info = InfoExtractor(archive).extract()

    :param archive: an opened :class:`~pyapkinfo.archive.ArchiveReader`
    """
    def __init__(self, archive):
        self.archive = archive
        self.manifest = None
        self._arsc = None
        self._arsc_loaded = False

    def load_manifest(self):
        """
        Read and decode the AndroidManifest.xml of the archive

        :rtype: :class:`~pyapkinfo.axmlparser.AxmlDocument`
        :raises ExtractionError: if the manifest is missing or can not be decoded
        """
        if self.manifest is not None:
            return self.manifest

        try:
            manifest_data = self.archive.read_entry(MANIFEST)
        except NotFoundError:
            log.error("Missing AndroidManifest.xml. Is this an APK file?")
            raise ExtractionError("manifest", InvalidApkError(
                "{} has no {}".format(self.archive.filename, MANIFEST)))
        except ArchiveError as e:
            raise ExtractionError("archive", e) from e

        try:
            self.manifest = axmlparser.parse(manifest_data)
        except AxmlFormatError as e:
            log.error("Error while parsing AndroidManifest.xml: %s", e)
            raise ExtractionError("manifest", e) from e

        return self.manifest

    def extract(self):
        """
        :rtype: :class:`APKInfo`
        :raises ExtractionError: if the manifest is missing or can not be decoded
        """
        self.load_manifest()

        root = self.manifest.get_root()
        if root is None or self.manifest.get_tag_name(root) != "manifest":
            log.error("AndroidManifest.xml does not start with a <manifest> tag! Is this a valid APK?")

        package_name = self.get_package()
        app_name = self.get_app_name(package_name)
        return APKInfo(package_name, app_name, self.get_version_name(), self.get_version_code())

    def _get_manifest_attribute(self, name):
        root = self.manifest.get_root()
        if root is None:
            return None
        return self.manifest.find_attribute(root, name)

    def get_package(self):
        """
        Return the name of the package or an empty string
        """
        attribute = self._get_manifest_attribute("package")
        if attribute is None:
            log.warning("No package name set in the manifest")
            return ""
        return self.manifest.format_attribute(attribute)

    def get_version_name(self):
        """
        Return the version name or an empty string

        A version name given as resource id is resolved.
        """
        attribute = self._get_manifest_attribute("versionName")
        if attribute is None:
            return ""
        if attribute.value.is_reference():
            return self.resolve(attribute.value.data, "")
        return self.manifest.format_attribute(attribute)

    def get_version_code(self):
        """
        Return the version code as decimal string, "0" if it is not a valid integer
        """
        attribute = self._get_manifest_attribute("versionCode")
        if attribute is None:
            return "0"

        value = attribute.value
        if value.data_type == const.TYPE_INT_DEC:
            return "%d" % long2int(value.data)
        if value.data_type == const.TYPE_INT_HEX:
            return "%d" % value.data

        if value.is_string():
            version_code = self.manifest.get_attribute_string(attribute).strip()
            if _INTEGER.match(version_code):
                return "%d" % int(version_code)

        log.warning("versionCode {!r} is not an integer, using 0".format(
            self.manifest.format_attribute(attribute)))
        return "0"

    def get_app_name(self, package_name):
        """
        Return the application label

        This name is read from the AndroidManifest.xml using the
        application android:label. A label given as resource id is looked up
        in the resources.arsc. If no label exists or it can not be resolved,
        the package name is returned.
        """
        attribute = self.manifest.get_attribute("application", "label")
        if attribute is None:
            log.warning("It looks like that no app name is set, using the package name")
            return package_name

        if attribute.value.is_reference():
            return self.resolve(attribute.value.data, package_name)

        app_name = self.manifest.format_attribute(attribute)
        return app_name if app_name else package_name

    def get_android_resources(self):
        """
        Return the :class:`~pyapkinfo.arscparser.ARSCParser` of the resources.arsc
        or None if there is no usable file
        """
        if self._arsc_loaded:
            return self._arsc
        self._arsc_loaded = True

        try:
            self._arsc = arscparser.parse(self.archive.read_entry(RESOURCES))
        except NotFoundError:
            # There is a rare case, that no resource file is supplied.
            log.warning("No resources.arsc found, resource ids can not be resolved")
        except (ArchiveError, ArscFormatError) as e:
            log.warning("Can not read resources.arsc: %s", e)
        return self._arsc

    def resolve(self, res_id, default):
        """
        Resolve a resource id to a string, `default` if this is not possible
        """
        res_parser = self.get_android_resources()
        if res_parser is None:
            return default

        try:
            return res_parser.resolve(res_id)
        except (NotFoundError, ArscFormatError) as e:
            log.warning("Can not resolve resource 0x{:08x} ({}): {}".format(
                res_id, res_parser.get_resource_name(res_id) or "unknown", e))
            return default


def _open(filename, max_entry_size):
    try:
        return ArchiveReader(filename, max_entry_size=max_entry_size)
    except ArchiveError as e:
        raise ExtractionError("archive", e) from e


def extract(filename, max_entry_size=MAX_ENTRY_SIZE):
    """
    Read package name, app name, version name and version code of an APK

    :param filename: path of the APK file
    :param max_entry_size: see :class:`~pyapkinfo.archive.ArchiveReader`
    :rtype: :class:`APKInfo`
    :raises ExtractionError: if the file is not a ZIP archive or has no valid manifest
    """
    with _open(filename, max_entry_size) as archive:
        return InfoExtractor(archive).extract()


def get_manifest_xml(filename, pretty=True):
    """
    Return the decoded AndroidManifest.xml of an APK as UTF-8 encoded XML

    :raises ExtractionError: if the file is not a ZIP archive or has no valid manifest
    """
    with _open(filename, MAX_ENTRY_SIZE) as archive:
        document = InfoExtractor(archive).load_manifest()
    return AXMLPrinter(document).get_xml(pretty=pretty)


def extract_from_bytes(raw):
    """
    Same as :func:`extract` for an APK which is already in memory
    """
    return extract(bytes(raw))
