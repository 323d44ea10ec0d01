from importlib import metadata

try:
    APICHAIN_VERSION = metadata.version("apichain")
except metadata.PackageNotFoundError:
    # Local run without installation
    APICHAIN_VERSION = "dev"
