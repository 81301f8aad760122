import sys

from lrc_transcriber.main import main

sys.exit(main())
