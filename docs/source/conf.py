# Sphinx configuration for the bovinator documentation.

import os
import sys

# Make the bovinator package importable without installing it
sys.path.insert(0, os.path.abspath("../.."))

from bovinator import __version__ as version  # noqa: E402

project = "Bovinator"
copyright = "2020, BBC R&D"
author = "BBC R&D"
release = version

master_doc = "index"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.intersphinx",
    "sphinx.ext.doctest",
    "numpydoc",
]

# Class members are documented explicitly by the module docstrings
numpydoc_show_class_members = False
autodoc_member_order = "bysource"
autodoc_typehints = "none"
add_module_names = False

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
}

html_theme = "nature"
