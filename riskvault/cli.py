#!/usr/bin/env python3
"""
RiskVault Command Line Interface

Usage:
    riskvault keygen [--key-path <file>] [--trust-store <file>] [--kid <id>]
    riskvault classify <breaches> <response_time_minutes> <vulnerabilities>
    riskvault demo [--key-bits <n>]
"""

import argparse
import json
import sys
from pathlib import Path


def cmd_keygen(args):
    """Generate the oracle's Ed25519 signing key and a trust store."""
    from riskvault.keys import generate_oracle_keys

    trust_store = generate_oracle_keys(args.key_path, args.trust_store, kid=args.kid)

    print(json.dumps(trust_store, indent=2))
    print(f"\nSigning key saved to: {args.key_path}", file=sys.stderr)
    print(f"Trust store saved to: {args.trust_store}", file=sys.stderr)
    return 0


def cmd_classify(args):
    """Classify one plaintext measurement triple."""
    from riskvault.classification import classify

    try:
        result = classify(args.breaches, args.response_time, args.vulnerabilities)
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


def _key_provider(args):
    from riskvault.keys import EphemeralOracleKeyProvider, FileOracleKeyProvider

    if args.key_path and args.trust_store:
        return FileOracleKeyProvider(args.key_path, args.trust_store)
    return EphemeralOracleKeyProvider()


def cmd_demo(args):
    """Run the full submit / reveal / aggregate flow against the reference oracle."""
    from riskvault import LocalDecryptionOracle, RiskLedger, RiskLevel, generate_paillier_keypair
    from riskvault.config import LedgerSettings

    print("=" * 60)
    print("RiskVault Demonstration")
    print("=" * 60)

    backend, private_key = generate_paillier_keypair(args.key_bits)
    oracle = LocalDecryptionOracle(private_key, key_provider=_key_provider(args))
    ledger = RiskLedger(backend, oracle, settings=LedgerSettings.from_env())

    submissions = [
        ("First National", 2, 30, 1),
        ("Harbor Credit Union", 6, 130, 11),
        ("Summit Savings", 0, 10, 0),
    ]

    print(f"\nPaillier key: {args.key_bits} bits, oracle kid: {oracle.key_provider.get_kid()}")

    print("\n" + "-" * 60)
    print("Encrypted submissions")
    print("-" * 60)
    for institution, breaches, response_time, vulns in submissions:
        record_id = ledger.submit(
            backend.encrypt(breaches),
            backend.encrypt(response_time),
            backend.encrypt(vulns),
            institution=institution,
        )
        print(f"  #{record_id} {institution}")

    print("\n" + "-" * 60)
    print("Reveal requests (answered by the oracle)")
    print("-" * 60)
    for record_id in ledger.list_record_ids():
        ledger.request_assessment_reveal(record_id)
    oracle.deliver_all()

    for record_id in ledger.list_record_ids():
        a = ledger.get_assessment(record_id)
        print(f"  #{record_id}: {a.risk_level.value} | systemic: {a.systemic_risk_flag.value}")
        print(f"      {a.recommendations}")

    print("\n" + "-" * 60)
    print("Aggregate counters")
    print("-" * 60)
    for level in ledger.category_registry():
        ledger.request_category_reveal(level)
    for outcome in oracle.deliver_all():
        print(f"  {outcome.category.value}: {outcome.count}")

    missing = [level.value for level in RiskLevel if level not in ledger.category_registry()]
    if missing:
        print(f"  (not yet initialized: {', '.join(missing)})")

    print("\n" + "-" * 60)
    print("Statistics")
    print("-" * 60)
    print(json.dumps(ledger.statistics().to_dict(), indent=2))

    print("\n" + "=" * 60)
    print("Demonstration complete.")
    print("=" * 60)
    return 0


def main(argv=None):
    from riskvault import config
    from riskvault.logging_config import configure_logging

    parser = argparse.ArgumentParser(
        description="RiskVault CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  riskvault demo                          Run demonstration
  riskvault classify 6 130 11
  riskvault keygen -k secrets/oracle_signing_key.json -t trust/trust_store.json
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate oracle signing key and trust store")
    keygen_parser.add_argument("-k", "--key-path", default=config.ORACLE_KEY_PATH, help="Signing key JSON file")
    keygen_parser.add_argument("-t", "--trust-store", default=config.TRUST_STORE_PATH, help="Trust store JSON file")
    keygen_parser.add_argument("--kid", default="riskvault-oracle-01", help="Key identifier")

    # classify
    classify_parser = subparsers.add_parser("classify", help="Classify a plaintext measurement")
    classify_parser.add_argument("breaches", type=int, help="Breach attempts")
    classify_parser.add_argument("response_time", type=int, help="Response time in minutes")
    classify_parser.add_argument("vulnerabilities", type=int, help="Open vulnerabilities")

    # demo
    demo_parser = subparsers.add_parser("demo", help="Run demonstration")
    demo_parser.add_argument("-b", "--key-bits", type=int, default=config.PAILLIER_KEY_BITS,
                             help="Paillier key size")
    demo_parser.add_argument("-k", "--key-path", help="Oracle signing key JSON file")
    demo_parser.add_argument("-t", "--trust-store", help="Trust store JSON file")

    args = parser.parse_args(argv)

    level = "DEBUG" if config.is_debug() else config.LOG_LEVEL
    configure_logging(level=level, json_format=config.LOG_JSON)

    if args.command == "keygen":
        return cmd_keygen(args)
    elif args.command == "classify":
        return cmd_classify(args)
    elif args.command == "demo":
        if config.is_production() and not (args.key_path and args.trust_store):
            print("✗ ephemeral oracle keys are not allowed in production; pass -k and -t", file=sys.stderr)
            return 1
        if args.key_path and not Path(args.key_path).exists():
            print(f"✗ signing key not found: {args.key_path}", file=sys.stderr)
            return 1
        return cmd_demo(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
