import sys

from busfeed.cli import main

sys.exit(main())
