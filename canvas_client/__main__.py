from canvas_client.launcher import main

raise SystemExit(main())
