import sys

from connlog.cli import main

sys.exit(main())
