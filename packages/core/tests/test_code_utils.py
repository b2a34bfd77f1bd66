"""Tests for file filtering utilities."""

from critiq_core.utils.code import is_code_file, language_tag


class TestIsCodeFile:
    def test_python_file_is_code(self):
        assert is_code_file("app/services/user.py") is True

    def test_js_file_is_code(self):
        assert is_code_file("src/components/Button.tsx") is True

    def test_image_is_not_code(self):
        assert is_code_file("assets/logo.png") is False

    def test_font_is_not_code(self):
        assert is_code_file("static/fonts/Inter.woff2") is False

    def test_archive_is_not_code(self):
        assert is_code_file("dist/bundle.tar.gz") is False

    def test_lock_file_is_not_code(self):
        assert is_code_file("poetry.lock") is False
        assert is_code_file("Pipfile.lock") is False

    def test_case_insensitive(self):
        assert is_code_file("image.PNG") is False

    def test_compiled_files_are_not_code(self):
        assert is_code_file("pkg/__init__.pyc") is False
        assert is_code_file("lib/native.so") is False

    def test_vendored_directories_skipped(self):
        assert is_code_file("node_modules/left-pad/index.js") is False
        assert is_code_file("src/__pycache__/mod.py") is False
        assert is_code_file(".venv/lib/site.py") is False

    def test_directory_name_as_file_is_not_skipped(self):
        assert is_code_file("docs/build") is True


class TestLanguageTag:
    def test_extension(self):
        assert language_tag("src/app.py") == "py"

    def test_last_extension_wins(self):
        assert language_tag("dist/bundle.min.JS") == "js"

    def test_no_extension(self):
        assert language_tag("Makefile") == ""

    def test_dotfile(self):
        assert language_tag("config/.bashrc") == ""
