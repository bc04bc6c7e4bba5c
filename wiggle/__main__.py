import sys

from wiggle.cli import main

sys.exit(main())
