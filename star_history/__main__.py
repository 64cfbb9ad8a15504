import sys

from star_history.cli import main

sys.exit(main())
