import sys

from cardgraph.cli import main

sys.exit(main())
