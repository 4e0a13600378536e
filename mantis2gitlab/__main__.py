import sys

from mantis2gitlab.main import main

sys.exit(main())
