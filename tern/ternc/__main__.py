# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
import sys

from .ternc import main

sys.exit(main())
