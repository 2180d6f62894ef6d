"""
Usage:
python get_app_name.py /path/to/extracted/apk/dir
"""
import sys
import os

from pyapkinfo import axmlparser
from pyapkinfo.arscparser import ARSCParser
from pyapkinfo.exceptions import NotFoundError

if len(sys.argv) < 2:
    print("Usage:\npython get_app_name.py /path/to/extracted/apk/dir")
    exit(1)

document = None
rsc = None
app_name = None
manifest_path = os.path.join(sys.argv[1], "AndroidManifest.xml")
if os.path.exists(manifest_path):
    with open(manifest_path, "rb") as manifest_file:
        document = axmlparser.parse(manifest_file.read())

resources_path = os.path.join(sys.argv[1], "resources.arsc")
if os.path.exists(resources_path):
    with open(resources_path, "rb") as resources_file:
        rsc = ARSCParser(resources_file.read())

if document:
    label = document.get_attribute("application", "label")
    if label is not None and label.value.is_reference():
        if rsc:
            try:
                app_name = rsc.resolve(label.value.data)
            except NotFoundError:
                pass
    elif label is not None:
        app_name = document.format_attribute(label)
print('App name is "{}"'.format(app_name if app_name else "Unknown"))
