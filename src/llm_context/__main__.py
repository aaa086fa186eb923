from llm_context.cli import main

raise SystemExit(main())
