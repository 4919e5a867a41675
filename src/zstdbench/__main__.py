"""Allow ``python -m zstdbench``."""

from zstdbench.cli import main

main()
