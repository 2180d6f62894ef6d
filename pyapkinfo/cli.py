# Copyright 2021 Appknox <engineering@appknox.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import os

import click

from pyapkinfo import __version__
from pyapkinfo.core import extract, get_manifest_xml
from pyapkinfo.exceptions import ExtractionError


def _strip(ctx, param, value):
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise click.BadParameter("empty path")
    return os.path.expanduser(value)


def _check_file(filename):
    if not os.path.exists(filename):
        raise click.BadParameter("'{}' does not exist".format(filename), param_hint="APK_PATH")
    if os.path.isdir(filename):
        raise click.BadParameter("'{}' is a directory".format(filename), param_hint="APK_PATH")


@click.command()
@click.argument('apk_path', envvar='apk_path', callback=_strip)
@click.option('--format', 'output_format', type=click.Choice(['text', 'env']), default='text',
              help="Print human readable text or KEY=value lines")
@click.option('--xml', 'print_xml', default=False, is_flag=True, help="Print the decoded AndroidManifest.xml")
@click.option('--silent', '-s', default=False, is_flag=True, help="Don't print any debug or warning logs")
@click.option('--debug', '-d', default=False, is_flag=True, help="Print debug logs")
@click.version_option(__version__)
def main(apk_path, output_format, print_xml, silent, debug):
    """
    Print package name, app name, version name and version code of APK_PATH.

    APK_PATH can also be given in the apk_path environment variable.
    """
    if debug:
        logging.basicConfig(level=logging.DEBUG)
    elif silent:
        logging.basicConfig(level=logging.ERROR)
    else:
        logging.basicConfig(level=logging.WARNING)

    _check_file(apk_path)

    try:
        if print_xml:
            click.echo(get_manifest_xml(apk_path).decode("utf-8"), nl=False)
            return
        info = extract(apk_path)
    except ExtractionError as e:
        click.echo('Error: {}'.format(e), err=True)
        raise SystemExit(1)

    if output_format == 'env':
        for key, value in sorted(info.as_environment().items()):
            click.echo('{}={}'.format(key, value))
    else:
        click.echo('Package: {}'.format(info.package_name))
        click.echo('App name: {}'.format(info.app_name))
        click.echo('Version name: {}'.format(info.version_name))
        click.echo('Version code: {}'.format(info.version_code))
