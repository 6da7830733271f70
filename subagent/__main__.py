from subagent.cli.main import main

raise SystemExit(main())
