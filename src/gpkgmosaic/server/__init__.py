"""HTTP service rendering GeoPackage mosaics as PNG."""
