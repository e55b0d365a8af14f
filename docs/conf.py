# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html
import os
import re
import sys
from pathlib import Path


sys.path.insert(0, os.path.abspath("../src"))

_ROOT = Path(__file__).resolve().parents[1]
_ver_file = _ROOT / "src" / "mysql_to_d1" / "__init__.py"
_m = re.search(r'^__version__\s*=\s*[\'"]([^\'"]+)[\'"]', _ver_file.read_text(encoding="utf-8"), re.M)
__version__ = _m.group(1) if _m else "0+unknown"


# -- Project information -----------------------------------------------------

project = "mysql-to-d1"
copyright = "%Y, the mysql-to-d1 contributors"
author = "mysql-to-d1 contributors"
release = __version__

# -- General configuration ---------------------------------------------------

extensions = ["sphinx.ext.autodoc", "sphinx.ext.viewcode", "sphinx.ext.napoleon"]

napoleon_google_docstring = True
napoleon_include_init_with_doc = True

templates_path = ["_templates"]
exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]


# -- Options for HTML output -------------------------------------------------

html_theme = "alabaster"
html_static_path = ["_static"]
