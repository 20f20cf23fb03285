import sys

from netdiagnose.cli import main

sys.exit(main())
