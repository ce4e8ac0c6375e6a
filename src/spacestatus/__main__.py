import sys

from spacestatus.cli import main

sys.exit(main())
