import sys

from python_nestloader.cli import main

sys.exit(main())
