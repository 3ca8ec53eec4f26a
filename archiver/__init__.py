"""Pull container images and archive them as compressed tarballs."""

__version__ = "0.1.0"
