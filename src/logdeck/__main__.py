import sys

from logdeck.cli import main

sys.exit(main())
