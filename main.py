"""
Local entry point. Each service is deployed on its own; this only saves
typing during development:

    python main.py gateway      # API Gateway on :3000
    python main.py orders       # Order Service on :3003
"""
import os
import sys

import uvicorn

APPS = {
    "gateway": ("services.api_gateway.main:gateway_app", 3000),
    "orders": ("services.order_service.main:order_app", 3003),
}


def main(argv: list[str]) -> int:
    if len(argv) != 2 or argv[1] not in APPS:
        print(f"usage: {argv[0]} {{{'|'.join(APPS)}}}", file=sys.stderr)
        return 2

    target, default_port = APPS[argv[1]]
    uvicorn.run(
        target,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", default_port)),
        proxy_headers=True,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
