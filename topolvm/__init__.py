"""LogicalVolume resources, plugin naming, access logging, configuration files and command-line options."""

__version__ = "0.1.0"