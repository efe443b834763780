import sys

from compass_publish.cli import main

sys.exit(main())
