import sys

from scada_gateway.app.gateway import main

if __name__ == "__main__":
    sys.exit(main())
