import sys

from deploywatch.cli import main

sys.exit(main())
