"""``python -m remoteadmin``."""

from remoteadmin.cli import main

raise SystemExit(main())
