import argparse
import asyncio
import json
import os
import sys

from builder import JsxToHtmlPlugin, render_bundle, write_documents
from jsxhtml.artifacts import load_bundle
from jsxhtml.config import CONFIG_FILE, default_config_json, load_config
from jsxhtml.discovery import build_input_map, discover_entries
from jsxhtml.errors import JsxToHtmlError
from jsxhtml.reporting import log, set_verbose
from jsxhtml.sandbox import NodeExecutor
from jsxhtml.transformer import SourceTransformer


def _config(args):
    return load_config(
        args.config,
        root=getattr(args, "root", None),
        out_dir=getattr(args, "out", None),
        cache_dir=getattr(args, "cache_dir", None),
        node=getattr(args, "node", None),
        keep_scratch=True if getattr(args, "keep_scratch", False) else None,
    )


def cmd_discover(args):
    """Print the bundler input map as JSON."""
    config = _config(args)
    entries = discover_entries(config.root_path, config.entry_extension)
    print(json.dumps(build_input_map(entries), indent=2))


def cmd_transform(args):
    """Transform one module the way the bundler's transform hook would."""
    config = _config(args)
    if not os.path.exists(args.filename):
        print(f"Error: File '{args.filename}' not found.", file=sys.stderr)
        sys.exit(1)
    with open(args.filename, 'r', encoding='utf-8') as f:
        code = f.read()

    transformer = SourceTransformer(config)
    result = transformer.transform(code, os.path.abspath(args.filename))
    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        sys.stdout.write(result.code)


def cmd_render(args):
    """Render a bundle dumped by the host bundler and write the HTML documents."""
    config = _config(args)
    store = load_bundle(args.bundle)
    log(f"Loaded {len(store)} artifacts from {args.bundle}")

    transformer = SourceTransformer(config)
    documents = asyncio.run(render_bundle(store, config, transformer.lookup, NodeExecutor(config.node)))

    write_documents(documents, config.out_dir)
    log(f"Wrote {len(documents)} document(s) to {config.out_dir}")
    if args.manifest:
        with open(args.manifest, 'w', encoding='utf-8') as f:
            json.dump(store.to_dict(), f, indent=2)


def cmd_plugin_config(args):
    """Print the config the plugin would merge into the bundler's."""
    plugin = JsxToHtmlPlugin(_config(args))
    print(json.dumps(plugin.amend_config(), indent=2))


def cmd_init(args):
    target = args.config or CONFIG_FILE
    if os.path.exists(target):
        print(f"Error: '{target}' already exists.", file=sys.stderr)
        sys.exit(1)
    with open(target, 'w', encoding='utf-8') as f:
        f.write(default_config_json() + "\n")
    log(f"Created {target}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Render JSX component entries to static HTML")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    parser.add_argument("--config", help=f"Config file (default: {CONFIG_FILE})")
    subparsers = parser.add_subparsers(dest="command")

    discover = subparsers.add_parser("discover", help="Print the bundler input map")
    discover.add_argument("--root", help="Source root")

    plugin_config = subparsers.add_parser("config", help="Print the bundler config amendment")
    plugin_config.add_argument("--root", help="Source root")

    transform = subparsers.add_parser("transform", help="Transform one module")
    transform.add_argument("filename")
    transform.add_argument("--root", help="Source root")
    transform.add_argument("--json", action="store_true", help="Print the full transform result as JSON")

    render = subparsers.add_parser("render", help="Render a dumped bundle to HTML")
    render.add_argument("--bundle", required=True, help="Bundle JSON written by the host bundler")
    render.add_argument("--root", help="Source root")
    render.add_argument("--out", help="Output directory (default: dist)")
    render.add_argument("--cache-dir", help="Parent directory for the scratch space")
    render.add_argument("--node", help="Node executable")
    render.add_argument("--keep-scratch", action="store_true", help="Do not delete the scratch space")
    render.add_argument("--manifest", help="Also write the pruned bundle as JSON")

    subparsers.add_parser("init", help="Write a default config file")

    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    commands = {
        "discover": cmd_discover,
        "config": cmd_plugin_config,
        "transform": cmd_transform,
        "render": cmd_render,
        "init": cmd_init,
    }
    if args.command not in commands:
        parser.print_help()
        return

    try:
        commands[args.command](args)
    except JsxToHtmlError as e:
        print(f"Error: Build Failed:{e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
