#!/usr/bin/env python3
"""
KUBEBIND CLI
------------
Command line front-end for offline or live binding resolution:

  kubebind resolve SOURCE -d DEFINITIONS [--store MANIFESTS]
  kubebind validate DEFINITIONS

Author: KubeBind Team
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

from kubernetes.config import ConfigException
from rich.console import Console
from rich.panel import Panel
from ruamel.yaml import YAML, YAMLError

from kubebind.config.loader import DefinitionLoader
from kubebind.core.engine import BindingEngine
from kubebind.core.errors import BindingError
from kubebind.export.exporter import BindingSecretExporter
from kubebind.readers.store import KubeStoreReader, ManifestStoreReader, StoreReader
from kubebind.cli.formatter import BindingFormatter

console = Console()
logger = logging.getLogger("kubebind.cli")


class BindingCLI:
    """
    Translates user commands into loader, engine and exporter calls.
    `run()` returns the process exit code.
    """

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="kubebind",
            description="KubeBind - resolve binding data from Kubernetes resources",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.yaml = YAML(typ="safe")
        self._setup_args()

    def _setup_args(self):
        self.parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        resolve_parser = subparsers.add_parser("resolve", help="Resolve binding data for a resource")
        resolve_parser.add_argument("source", help="YAML file holding the source resource")
        resolve_parser.add_argument("-d", "--definitions", required=True, help="YAML file of binding definitions")
        resolve_parser.add_argument("--store", help="YAML file of Secrets/ConfigMaps to read instead of the cluster")
        resolve_parser.add_argument("--kubeconfig", help="Path to a kubeconfig file")
        resolve_parser.add_argument("--context", help="Kubeconfig context to use")
        resolve_parser.add_argument("-n", "--namespace", help="Namespace used when the source has none")
        resolve_parser.add_argument("--secret-name", help="Name of the binding Secret (default: <source>-binding)")
        resolve_parser.add_argument("-o", "--output", help="Write the binding Secret manifest to this file")
        resolve_parser.add_argument("--workers", type=int, default=1, help="Definitions applied in parallel")
        resolve_parser.add_argument("--timeout", type=float, help="Request timeout in seconds for cluster reads")
        resolve_parser.add_argument("--show-values", action="store_true", help="Print resolved values unmasked")

        validate_parser = subparsers.add_parser("validate", help="Check a definitions file")
        validate_parser.add_argument("definitions", help="YAML file of binding definitions")

    def _load_documents(self, path: str) -> List[Any]:
        text = Path(path).read_text(encoding="utf-8-sig")
        return [doc for doc in self.yaml.load_all(text) if doc is not None]

    def _build_reader(self, args: argparse.Namespace, namespace: str) -> Optional[StoreReader]:
        if args.store:
            return ManifestStoreReader(self._load_documents(args.store), default_namespace=namespace)
        try:
            return KubeStoreReader.from_kubeconfig(args.kubeconfig, args.context, request_timeout=args.timeout)
        except (ConfigException, OSError) as e:
            # Only fatal if a definition actually needs the cluster
            logger.warning(f"No cluster access available: {e}")
            return None

    def _atomic_write(self, target_path: Path, content: str):
        temp_file = target_path.with_suffix(target_path.suffix + '.tmp')
        try:
            temp_file.write_text(content, encoding='utf-8')
            os.replace(temp_file, target_path)
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise IOError(f"Atomic write failed: {str(e)}")

    def _resolve(self, args: argparse.Namespace) -> int:
        documents = self._load_documents(args.source)
        if not documents or not isinstance(documents[0], dict):
            console.print(f"[bold red]Error:[/bold red] '{args.source}' holds no resource.")
            return 1
        source = documents[0]

        metadata = source.get("metadata") or {}
        source["metadata"] = metadata
        namespace = metadata.get("namespace") or args.namespace or "default"
        metadata["namespace"] = namespace
        source_name = metadata.get("name") or "binding"

        reader = self._build_reader(args, namespace)
        definitions = DefinitionLoader(reader).load(args.definitions)

        engine = BindingEngine(max_workers=args.workers)
        report = engine.resolve(source, definitions)

        formatter = BindingFormatter(show_values=args.show_values)
        if report["status"] != "RESOLVED":
            formatter.print_error(report)
            return 1

        formatter.print_binding_table(report["data"], source_name)

        exporter = BindingSecretExporter()
        manifest = exporter.build(args.secret_name or f"{source_name}-binding", namespace, report["data"])
        manifest_yaml = exporter.export(manifest)

        if args.output:
            self._atomic_write(Path(args.output), manifest_yaml)
            console.print(f"[green]Binding Secret written to {args.output}[/green]")
        else:
            formatter.print_manifest(manifest_yaml)
        return 0

    def _validate(self, args: argparse.Namespace) -> int:
        # An empty in-memory store satisfies mapFromDataField entries
        definitions = DefinitionLoader(ManifestStoreReader()).load(args.definitions)
        BindingFormatter().print_definitions(definitions)
        console.print(f"[green]{len(definitions)} definition(s) are valid.[/green]")
        return 0

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point."""
        args = self.parser.parse_args(argv)
        logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

        if args.command is None:
            self.parser.print_help()
            return 0

        try:
            if args.command == "resolve":
                return self._resolve(args)
            return self._validate(args)
        except BindingError as e:
            console.print(Panel(f"[bold red]{e.reason}[/bold red]\n{e}", title="Error", border_style="red"))
            return 1
        except (OSError, YAMLError) as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return 1


def main(argv: Optional[List[str]] = None):
    """Application entry point with interrupt handling."""
    try:
        sys.exit(BindingCLI().run(argv))
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
