"""
SC_Libs - Spool Colorizer Library Modules

This package contains core functionality for the Spool Colorizer project,
organized into specialized sub-packages:

- ImageEditingLib: Raster models, tint and adjustment filters
- NodesLib: Render pipeline nodes (tint, adjust, composite, encode, output)
- ProjStoreLib: Graph execution, assets, caches and batch processing
"""

__version__ = "0.1.0"
