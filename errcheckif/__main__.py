"""Allow ``python -m errcheckif``."""

from errcheckif.main import main

raise SystemExit(main())
