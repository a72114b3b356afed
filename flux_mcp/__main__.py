import sys

from flux_mcp.api.main import main


sys.exit(main())
