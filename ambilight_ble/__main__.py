import sys

from ambilight_ble.main import main

sys.exit(main())
