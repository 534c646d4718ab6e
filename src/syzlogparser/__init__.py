"""
syzlogparser — Extract and classify crash reports from kernel console logs.

Subpackages
-----------
core
    Shared models, configuration, console output and errors.
report
    Pattern registries per target and the ``Reporter`` that finds,
    titles and annotates crash sections.
cli
    The ``syz-logparser`` command line tool.
"""

__version__ = "0.2.0"
