"""cliperf — pick which build-tool benchmark variants to run, then run them."""

__version__ = "0.1.0"
