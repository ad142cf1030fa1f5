"""
Command-line entry point and logging setup.

    alignment-engine align ACGT AGT --mode global
    alignment-engine banded ACGTACGT ACGACGT --bandwidth 4
    alignment-engine msa ACGT ACG ACGGT --kind dna
    alignment-engine poa ACGT ACT ACGT
    alignment-engine cigar 3M1I2M

Results are printed to stdout as JSON.
Author: Rowel Facunla
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.config_loader import reload_config
from ..core.errors import AlignmentEngineError
from . import api


def setup_logging(config: Dict[str, Any], verbose: bool = False) -> logging.Logger:
    """Setup logging configuration."""
    debug = config.get('debug', {})
    log_level_str = 'DEBUG' if verbose else str(debug.get('log_level', 'INFO'))
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)

    logger = logging.getLogger('alignment_engine')
    logger.setLevel(log_level)

    # Remove existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Console handler (stderr, stdout carries the results)
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    log_file = debug.get('log_file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='alignment-engine',
        description='Pairwise, banded, multiple and partial-order sequence alignment',
    )
    parser.add_argument('--config', help='Path to config file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('align', help='Pairwise alignment')
    p.add_argument('query')
    p.add_argument('target')
    p.add_argument('--mode', help='local, global or semiglobal')
    p.add_argument('--matrix', help='Protein substitution matrix (blosum62, blosum45, blosum80, pam250)')
    p.add_argument('--extended-cigar', action='store_true', help='Emit =/X instead of M')

    p = sub.add_parser('banded', help='Banded pairwise alignment')
    p.add_argument('query')
    p.add_argument('target')
    p.add_argument('--mode', help='local, global or semiglobal')
    p.add_argument('--bandwidth', type=int, help='Band half-width')
    p.add_argument('--score-only', action='store_true', help='Print only the score')

    p = sub.add_parser('msa', help='Progressive multiple alignment')
    p.add_argument('sequences', nargs='+')
    p.add_argument('--kind', default='dna', choices=api.MSA_KINDS)

    p = sub.add_parser('poa', help='Partial-order alignment consensus')
    p.add_argument('sequences', nargs='+')

    p = sub.add_parser('cigar', help='CIGAR statistics')
    p.add_argument('cigar')

    return parser


def run_command(args: argparse.Namespace) -> Dict[str, Any]:
    """Execute one parsed sub-command and return its JSON-ready result."""
    if args.command == 'align':
        if args.matrix:
            result = api.align_protein(args.query, args.target, args.mode, args.matrix)
        else:
            result = api.align_dna(args.query, args.target, args.mode)
        out = result.as_dict()
        if args.extended_cigar:
            out['cigar'] = result.cigar_string(extended=True)
        return out

    if args.command == 'banded':
        if args.score_only:
            return {'score': api.banded_score_only_dna(args.query, args.target, args.mode, args.bandwidth)}
        return api.banded_align_dna(args.query, args.target, args.mode, args.bandwidth).as_dict()

    if args.command == 'msa':
        return api.msa(args.sequences, args.kind).as_dict()

    if args.command == 'poa':
        consensus = api.poa_consensus(args.sequences)
        return {'consensus': consensus.decode('ascii', 'replace'), 'n_sequences': len(args.sequences)}

    return api.cigar_stats(args.cigar).as_dict()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load configuration
    try:
        loader = reload_config(args.config)
    except Exception as e:
        print(f"ERROR loading configuration: {e}", file=sys.stderr)
        return 1

    logger = setup_logging(loader.config, verbose=args.verbose)
    logger.debug(f"Configuration loaded from {loader.config.get('_source', 'defaults')}")

    try:
        output = run_command(args)
    except AlignmentEngineError as e:
        print(e.formatted(), file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
