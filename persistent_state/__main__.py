from persistent_state.cli import main

raise SystemExit(main())
