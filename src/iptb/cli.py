#!/usr/bin/env python3
"""
IPTB command line interface

Usage:
    iptb -n=10 init
    iptb -wait start
    iptb stop
    iptb shell 0
    iptb get id 3
"""

import argparse
import asyncio
import os
import sys
from typing import Callable, List, Optional

from .cluster.orchestrator import Orchestrator
from .cluster.node_store import NodeDirectoryStore
from .cluster.topology import ClusterConfig
from .errors import InitFailed, IptbError
from .utils.config import CONFIG_ENV_VAR, load_settings, resolve_root
from .utils.logger import setup_logger

HELPTEXT = """IPFS Testbed

Commands:
    init
        creates and initializes 'n' repos

        Options:
            -n=[number of nodes]
            -f - force overwriting of existing nodes
            -bootstrap - select bootstrapping style for cluster
                choices: star, none
            -mdns - turn on mdns for nodes
            -p=[port] - port to start allocations from

    start
        starts up all testbed nodes

        Options:
            -wait - wait until daemons are fully initialized
    stop, kill
        kills all testbed nodes
    restart
        kills, then restarts all testbed nodes

    shell [n]
        execs your shell with environment variables set as follows:
            IPFS_PATH - set to testbed node n's IPFS_PATH
            NODE[x] - set to the peer ID of node x

    get [attribute] [node]
        get an attribute of the given node
        currently supports: "id"

Env Vars:

IPTB_ROOT:
    Used to specify the directory that nodes will be created in.
IPTB_CONFIG:
    Optional YAML or JSON settings file.
"""


class CommandError(Exception):
    """Usage error reported before any testbed operation runs"""


def yes_no_prompt(prompt: str, input_fn: Optional[Callable[[str], str]] = None) -> bool:
    """Ask until the operator answers y/Y or n/N"""
    input_fn = input_fn or input
    while True:
        print(prompt)
        answer = input_fn("").strip()
        if answer in ("y", "Y"):
            return True
        if answer in ("n", "N"):
            return False
        print("Please press either 'y' or 'n'")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='iptb',
        description='IPFS Testbed',
        allow_abbrev=False,
        add_help=False
    )
    parser.add_argument('-n', dest='count', type=int, default=0,
                        help='number of ipfs nodes to initialize')
    parser.add_argument('-p', dest='port_start', type=int, default=4002,
                        help='port to start allocations from')
    parser.add_argument('-f', dest='force', action='store_true',
                        help='force initialization (overwrite existing configs)')
    parser.add_argument('-mdns', dest='mdns', action='store_true',
                        help='turn on mdns for nodes')
    parser.add_argument('-bootstrap', dest='bootstrap', default='star',
                        help='select bootstrapping style for cluster')
    parser.add_argument('-wait', dest='wait', action='store_true',
                        help='wait for nodes to come fully online before exiting')
    parser.add_argument('--config', default=None,
                        help='settings file path')
    parser.add_argument('--log-level', default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    parser.add_argument('-h', '--help', action='store_true')
    parser.add_argument('command', nargs='?')
    parser.add_argument('args', nargs='*')
    return parser


def _node_index(value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise CommandError(f"parse err: {e}") from e


async def dispatch(
    orchestrator: Orchestrator,
    args: argparse.Namespace,
    prog: str = 'iptb'
) -> int:
    """Run one command; IptbError propagates to the caller"""
    command = args.command

    if command == 'init':
        if args.count == 0:
            raise CommandError(f"please specify number of nodes: '{prog} -n=10 init'")
        cfg = ClusterConfig(
            count=args.count,
            force=args.force,
            bootstrap=args.bootstrap,
            port_start=args.port_start,
            mdns=args.mdns
        )
        try:
            await orchestrator.init(cfg)
        except InitFailed as e:
            for result in e.results:
                if not result.ok:
                    print(f"ERROR: node {result.index}: {result.error}", file=sys.stderr)
            raise

    elif command == 'start':
        await orchestrator.start(wait=args.wait)

    elif command in ('stop', 'kill'):
        for result in orchestrator.stop():
            if not result.ok:
                print(f"error killing daemon {result.index}: {result.error}", file=sys.stderr)

    elif command == 'restart':
        await orchestrator.restart(wait=args.wait)

    elif command == 'shell':
        if len(args.args) < 1:
            raise CommandError("please specify which node you want a shell for")
        launch = orchestrator.shell(_node_index(args.args[0]))
        launch.execute()

    elif command == 'get':
        if len(args.args) < 2:
            raise CommandError(f"{prog} get [attr] [node]")
        value = orchestrator.get(args.args[0], _node_index(args.args[1]))
        print(value)

    else:
        print(HELPTEXT)
        return 1

    return 0


ERROR_LABELS = {
    'init': 'ipfs init err:',
    'start': 'ipfs start err:',
    'stop': 'ipfs kill err:',
    'kill': 'ipfs kill err:',
    'restart': 'ipfs restart err:',
    'shell': 'ipfs shell err:',
    'get': 'error getting attribute:',
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.help or not args.command:
        print(HELPTEXT)
        return 0 if args.help else 1

    try:
        settings = load_settings(args.config or os.environ.get(CONFIG_ENV_VAR))
        setup_logger(
            level=args.log_level or settings.logging.level,
            structured=settings.logging.structured
        )
        store = NodeDirectoryStore(resolve_root(settings))
        orchestrator = Orchestrator(store, settings, confirm=yes_no_prompt)
        return asyncio.run(dispatch(orchestrator, args, prog=parser.prog))
    except CommandError as e:
        print(e, file=sys.stderr)
        return 1
    except IptbError as e:
        label = ERROR_LABELS.get(args.command, 'error:')
        print(label, e, file=sys.stderr)
        return 1


def run():
    sys.exit(main())


if __name__ == '__main__':
    run()
