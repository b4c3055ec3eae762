"""rocksbuild - builds the vendored RocksDB and Snappy libraries for Cargo."""

__version__ = "0.1.0"
