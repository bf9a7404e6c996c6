from activity_meter.cli import main

raise SystemExit(main())
