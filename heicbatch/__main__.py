import sys

from heicbatch.main import main

sys.exit(main())
