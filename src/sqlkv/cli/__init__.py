"""sqlkv command line interface."""
