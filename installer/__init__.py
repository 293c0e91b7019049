"""
Nextcloud single-host installer.

This package holds the configuration layer, the command line handling and
the ordered installation sequence.
"""
