import sqlite3
import sys
from unittest.mock import MagicMock, patch

from mysql_to_d1.debug_info import _implementation, _mysql_version, info


class TestDebugInfo:
    def test_implementation_cpython(self) -> None:
        """Test _implementation function with CPython."""
        with patch("platform.python_implementation", return_value="CPython"):
            with patch("platform.python_version", return_value="3.12.1"):
                assert _implementation() == "CPython 3.12.1"

    def test_implementation_pypy_non_final(self) -> None:
        """Test _implementation function with PyPy non-final release."""
        with patch("platform.python_implementation", return_value="PyPy"):
            mock_version_info = MagicMock()
            mock_version_info.major = 7
            mock_version_info.minor = 3
            mock_version_info.micro = 1
            mock_version_info.releaselevel = "beta"

            with patch.object(sys, "pypy_version_info", mock_version_info, create=True):
                assert _implementation() == "PyPy 7.3.1beta"

    def test_implementation_unknown(self) -> None:
        """Test _implementation function with unknown implementation."""
        with patch("platform.python_implementation", return_value="Jython"):
            assert _implementation() == "Jython Unknown"

    def test_mysql_version_found(self) -> None:
        """Test _mysql_version function when MySQL is found."""
        with patch("mysql_to_d1.debug_info.which", return_value="/usr/bin/mysql"):
            with patch("mysql_to_d1.debug_info.check_output", return_value=b"mysql  Ver 8.0.23"):
                assert _mysql_version() == "mysql  Ver 8.0.23"

    def test_mysql_version_exception(self) -> None:
        """Test _mysql_version function with exception."""
        with patch("mysql_to_d1.debug_info.which", return_value="/usr/bin/mysql"):
            with patch("mysql_to_d1.debug_info.check_output", side_effect=Exception("Command failed")):
                assert _mysql_version() == "MySQL client not found on the system"

    def test_mysql_version_not_found(self) -> None:
        """Test _mysql_version function when MySQL is not found."""
        with patch("mysql_to_d1.debug_info.which", return_value=None):
            assert _mysql_version() == "MySQL client not found on the system"

    def test_info(self) -> None:
        """Test info function."""
        with patch("platform.system", return_value="Linux"):
            with patch("platform.release", return_value="6.1.0"):
                with patch("mysql_to_d1.debug_info._implementation", return_value="CPython 3.12.1"):
                    with patch("mysql_to_d1.debug_info._mysql_version", return_value="mysql  Ver 8.0.23"):
                        with patch.object(sqlite3, "sqlite_version", "3.45.0"):
                            result = info()
                            assert result[0][0] == "mysql-to-d1"
                            assert result[2] == ["Operating System", "Linux 6.1.0"]
                            assert result[3] == ["Python", "CPython 3.12.1"]
                            assert result[4] == ["MySQL", "mysql  Ver 8.0.23"]
                            assert result[5] == ["SQLite", "3.45.0"]
                            assert "requests" in [row[0] for row in result]

    def test_info_platform_error(self) -> None:
        """Test info function with platform error."""
        with patch("platform.system", side_effect=IOError("Platform error")):
            with patch("mysql_to_d1.debug_info._mysql_version", return_value="mysql  Ver 8.0.23"):
                result = info()
                assert result[2] == ["Operating System", "Unknown"]
