"""Convert IIS W3C extended log files into Excel workbooks."""

import logging

__version__ = "1.2.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
