"""Chopline operations CLI.

Runs the periodic and diagnostic tasks that are not tied to an HTTP request.

Usage:
    python src/manage.py sweep-payments      # Time out overdue PENDING payments
    python src/manage.py gateway-health      # Report payment gateway readiness
"""

import argparse
import json
import sys


def sweep_payments():
    """Time out every PENDING payment past its deadline."""
    from ordering.domain import ordering
    from ordering.payment.timeout import expire_stale_payments

    ordering.init()
    with ordering.domain_context():
        expired = expire_stale_payments()

    print(f"Expired {len(expired)} payment(s).")
    for payment_id in expired:
        print(f"  {payment_id}")
    return expired


def gateway_health():
    """Print the gateway health report; exit non-zero unless healthy."""
    from payments.gateway import get_gateway

    report = get_gateway().health_check()
    print(json.dumps(report, indent=2))
    return report


def main():
    parser = argparse.ArgumentParser(description="Chopline operations")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("sweep-payments", help="Time out overdue pending payments")
    subparsers.add_parser("gateway-health", help="Check payment gateway readiness")

    args = parser.parse_args()

    if args.command == "sweep-payments":
        sweep_payments()
    elif args.command == "gateway-health":
        if gateway_health().get("status") != "healthy":
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
