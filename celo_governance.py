#!/usr/bin/env python3
"""
Celo Governance Viewer

Parse and read Celo governance proposals: list the active ones, show a full
report for a single proposal, or list the executed proposal history.

Usage:
    # Active (dequeued + queued) proposals
    python3 celo_governance.py

    # Full report for one proposal
    python3 celo_governance.py --proposalID 42

    # Executed proposals
    python3 celo_governance.py --history --network https://forno.celo.org
"""

import sys
import argparse
from typing import Any, Dict, List, Optional

from celo_utils import (
    CeloToolError, MAX_CONCURRENT_LOOKUPS, ABI_DIR,
    load_config, configure_logging, logger
)
from celo_governance_client import Web3GovernanceClient
from celo_proposal_aggregator import ProposalAggregator
from celo_report_renderer import ReportRenderer

# Version number (semantic versioning: MAJOR.MINOR.PATCH)
__version__ = "1.0.0"


def proposal_id_type(value: str) -> int:
    """argparse type for proposal IDs (unsigned integers)"""
    try:
        proposal_id = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid proposal ID: {value}")
    if proposal_id < 0:
        raise argparse.ArgumentTypeError(f"invalid proposal ID: {value}")
    return proposal_id


class GovernanceArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with the tool's failure code (1)"""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = GovernanceArgumentParser(description='Parse and read Celo governance proposals.')
    parser.add_argument(
        '-n', '--network',
        help='Celo node URL to connect to (default: config network.url, '
             'CELO_NETWORK_URL or https://forno.celo.org)'
    )
    parser.add_argument(
        '-i', '--proposalID',
        dest='proposal_id',
        type=proposal_id_type,
        help='Governance proposal ID'
    )
    parser.add_argument(
        '--history',
        action='store_true',
        help='List already executed governance proposals'
    )
    parser.add_argument(
        '-c', '--config',
        help='YAML config file (default: config.yaml next to this script)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    return parser


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    return config.get(name, {}) or {}


def run_command(args: argparse.Namespace, aggregator: ProposalAggregator,
                renderer: ReportRenderer) -> str:
    """Run the selected query and return the rendered report"""
    if args.proposal_id is not None:
        return renderer.render(aggregator.get_report(args.proposal_id))
    if args.history:
        return renderer.render_executed(aggregator.list_executed())
    return renderer.render_active(aggregator.list_active())


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config) if args.config else {}
    if args.config or args.verbose:
        configure_logging(config, verbose=args.verbose)

    network_url = args.network or _section(config, 'network').get('url')
    explorer_base = _section(config, 'explorer').get('base_url')
    decoder_config = _section(config, 'decoder')

    try:
        client = Web3GovernanceClient(network_url=network_url, explorer_base=explorer_base)
        aggregator = ProposalAggregator(
            client,
            max_workers=decoder_config.get('max_workers', MAX_CONCURRENT_LOOKUPS),
            abi_dir=decoder_config.get('abi_dir', ABI_DIR)
        )
        renderer = ReportRenderer(explorer_base=explorer_base)
        output = run_command(args, aggregator, renderer)
    except CeloToolError as e:
        logger.error(f"Error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
