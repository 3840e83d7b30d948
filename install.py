#!/usr/bin/env python3

import sys

from archtui.cli import main

if __name__ == "__main__":
  try:
    sys.exit(main())

  except KeyboardInterrupt:
    sys.exit(130)
