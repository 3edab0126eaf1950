from goforge.cli import main

raise SystemExit(main())
