"""Unit tests for codesync.sync.path_guard."""
import pytest

from codesync.sync.path_guard import is_path_writeable, validate_file_path


class TestValidateFilePath:
    def test_traversal_rejected_before_reaching_storage(self):
        check = validate_file_path("../../etc/passwd")
        assert check.valid is False
        assert check.error == "Path traversal not allowed"

    def test_traversal_checked_before_absolute(self):
        check = validate_file_path("/../etc/passwd")
        assert check.error == "Path traversal not allowed"

    @pytest.mark.parametrize("path", ["/etc/passwd", "\\windows\\system32", "C:/Users/x.ts"])
    def test_absolute_paths_rejected(self, path):
        check = validate_file_path(path)
        assert check.valid is False
        assert check.error == "Absolute paths not allowed"

    def test_empty_path_rejected(self):
        assert validate_file_path("").error == "Empty path"
        assert validate_file_path("   ").error == "Empty path"

    @pytest.mark.parametrize(
        "path",
        [
            "package.json",
            "package-lock.json",
            "bun.lockb",
            ".gitignore",
            "src/main.tsx",
            "src/integrations/supabase/client.ts",
            "tsconfig.app.json",
            "vite.config.ts",
            "tailwind.config.js",
            "node_modules/react/index.js",
            "dist/assets/index.js",
            ".cache/x",
            ".git/config",
            ".env.local",
        ],
    )
    def test_protected_paths_rejected(self, path):
        check = validate_file_path(path)
        assert check.valid is False
        assert check.error == f"Protected path: {path}"

    @pytest.mark.parametrize(
        "path",
        [
            "src/components/Button.tsx",
            "src/pages/Index.tsx",
            "src/mainframe.tsx",
            "docs/package.json",
            "src/index.css",
        ],
    )
    def test_ordinary_paths_accepted(self, path):
        check = validate_file_path(path)
        assert check.valid is True
        assert check.error is None

    def test_custom_patterns_replace_defaults(self):
        patterns = [r"^src/secret"]
        assert validate_file_path("src/secret/keys.ts", patterns).valid is False
        assert validate_file_path("package.json", patterns).valid is True


class TestIsPathWriteable:
    def test_default_deny_list(self):
        assert is_path_writeable("src/App.tsx") is True
        assert is_path_writeable("package.json") is False

    def test_empty_pattern_list_allows_everything(self):
        assert is_path_writeable("package.json", []) is True
