"""compass-publish: upload gitbook files and attach their cid to a dCompass project."""

__version__ = "0.1.0"
