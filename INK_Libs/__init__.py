"""
INK_Libs - Ink Mapper Library Modules

This package contains core functionality for the Ink Mapper project,
organized into specialized sub-packages:

- ColorLib: Color science, ink models, patterns, clustering and mix solving
- MappingLib: Snapshots, pixel mapping, region masks and post-processing
- TaskLib: Cancellable background clustering
- ProjStoreLib: Project state, project files and preferences
"""

__version__ = "0.1.0"
