"""
filtercompiler package - Block-list Filter Compiler

Modules:
    rule_masks: Cosmetic rule dialect separators
    converter: Legacy rule syntax conversion
    downloader: Remote fetching and local file IO
    exclusions: Exclusion list filtering
    includes: @include directive expansion
    validator: Rule validation and domain blacklist
    sorter: Final rule ordering
    compiler: Template compilation pipeline
    version: Version strings and build revisions
    builder: Build a single filter directory
    pipeline: Build every filter directory under a root
"""

__version__ = "1.0.0"
