"""Packaged data files: default settings and the default trade/shop catalog."""
