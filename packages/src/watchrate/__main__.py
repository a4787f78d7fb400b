"""Allow ``python -m watchrate``."""

from watchrate._cli import main

main()
