"""Test session setup: keep log files out of the working tree."""
import os
import tempfile

# must run before stock_hub.settings is imported
os.environ.setdefault("STOCK_DATA_ROOT", tempfile.mkdtemp(prefix="stock-hub-tests-"))
