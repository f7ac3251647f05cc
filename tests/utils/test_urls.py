"""Tests for URL helpers."""

from d8_data.utils.urls import join_url


class TestJoinUrl:
    """Tests for join_url."""

    def test_joins_relative_path(self) -> None:
        """Test a relative path is appended to the base path."""
        assert join_url("https://exporter.svc/", "api/v1/files") == (
            "https://exporter.svc/api/v1/files"
        )

    def test_base_without_path(self) -> None:
        """Test joining onto a bare host."""
        assert join_url("https://exporter.svc", "api/v1/block") == (
            "https://exporter.svc/api/v1/block"
        )

    def test_collapses_slashes_between_elements(self) -> None:
        """Test duplicate separators are removed."""
        assert join_url("https://h/base/", "/api/", "/files") == "https://h/base/api/files"

    def test_keeps_trailing_slash_of_last_element(self) -> None:
        """Test a directory path keeps its trailing slash."""
        assert join_url("https://h/api/v1/files", "/sub/") == "https://h/api/v1/files/sub/"
        assert join_url("https://h/api/v1/files", "/") == "https://h/api/v1/files/"

    def test_file_path_has_no_trailing_slash(self) -> None:
        """Test a file path is joined as is."""
        assert join_url("https://h/api/v1/files", "/sub/b.txt") == (
            "https://h/api/v1/files/sub/b.txt"
        )

    def test_preserves_port_and_query(self) -> None:
        """Test the host, port and query of the base survive."""
        assert join_url("https://h:8443/x?token=1", "y") == "https://h:8443/x/y?token=1"

    def test_no_elements_keeps_base(self) -> None:
        """Test joining nothing returns an equivalent URL."""
        assert join_url("https://h/a/") == "https://h/a/"
        assert join_url("https://h/a") == "https://h/a"
