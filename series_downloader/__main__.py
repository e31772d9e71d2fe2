import sys

from .crawler import main

sys.exit(main())
