import unittest

from click.testing import CliRunner

from pyapkinfo.cli import main

from tests.builders import Ref, build_arsc, build_manifest, TypeChunk, write_apk


class CliTest(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def write(self, path, **kwargs):
        files = {"AndroidManifest.xml": build_manifest(**kwargs)}
        files["resources.arsc"] = build_arsc([TypeChunk(0x0a, {0: ("app_name", "Acme Resolved")})])
        return write_apk(path, files)

    def test_text_output(self):
        with self.runner.isolated_filesystem():
            path = self.write("app.apk")
            result = self.runner.invoke(main, [path])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output, (
            "Package: com.acme.app\n"
            "App name: Acme\n"
            "Version name: 1.2.3\n"
            "Version code: 45\n"
        ))

    def test_env_output(self):
        with self.runner.isolated_filesystem():
            path = self.write("app.apk", label=Ref(0x7f0a0000))
            result = self.runner.invoke(main, ["--format", "env", path])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output.splitlines(), [
            "ANDROID_APP_NAME=Acme Resolved",
            "ANDROID_APP_PACKAGE_NAME=com.acme.app",
            "ANDROID_APP_VERSION_CODE=45",
            "ANDROID_APP_VERSION_NAME=1.2.3",
        ])

    def test_path_from_environment(self):
        with self.runner.isolated_filesystem():
            self.write("app.apk")
            result = self.runner.invoke(main, [], env={"apk_path": "  app.apk \n"})
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Package: com.acme.app", result.output)

    def test_xml_output(self):
        with self.runner.isolated_filesystem():
            path = self.write("app.apk")
            result = self.runner.invoke(main, ["--xml", path])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('package="com.acme.app"', result.output)
        self.assertIn('android:versionName="1.2.3"', result.output)

    def test_missing_path(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(main, ["missing.apk"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("does not exist", result.output)

    def test_directory(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(main, ["."])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("is a directory", result.output)

    def test_no_path(self):
        result = self.runner.invoke(main, [], env={"apk_path": None})
        self.assertEqual(result.exit_code, 2)

    def test_not_an_apk(self):
        with self.runner.isolated_filesystem():
            with open("app.apk", "wb") as f:
                f.write(b"not a zip")
            result = self.runner.invoke(main, ["-s", "app.apk"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("archive stage failed", result.output)
