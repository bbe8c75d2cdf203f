"""Version information for :mod:`sparqlkit`."""

VERSION = "0.1.0"
