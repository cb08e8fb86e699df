"""Sphinx configuration for the Credential Service documentation."""

from __future__ import annotations

import os
import sys
from datetime import datetime

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT_DIR)


project = "Credential Service"
author = "Platform Team"
copyright = f"{datetime.now():%Y}, {author}"
release = "0.1.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx_autodoc_typehints",
]

autodoc_typehints = "description"
autodoc_mock_imports = ["psycopg", "psycopg_pool", "bcrypt"]
napoleon_google_docstring = False
napoleon_numpy_docstring = True

exclude_patterns: list[str] = ["_build"]

html_theme = "alabaster"
