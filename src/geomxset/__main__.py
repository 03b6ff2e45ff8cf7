import sys

from geomxset.cli import main

sys.exit(main())
