from __future__ import annotations

import argparse
import logging
import os
from typing import Any, Dict, List, Optional

from .backup import BackupManager, RestorePolicy, RestoreScope
from .catalog import Catalog, load_catalog
from .config import POLICIES, Config, load_config
from .conflicts import validate_catalog
from .deployer import Outcome, SymlinkDeployer, inspect_mapping
from .errors import CommandFailed, ComponentDirectoryMissing, DotstrapError, ResolutionError
from .executor import make_executor
from .lib.prompts import AutoPrompter, ConsolePrompter, Prompter
from .lib.services import disable_service
from .logging_utils import configure_logging
from .mappings import component_dir, discover, discover_components
from .pipeline import ApplyContext, run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    DeployConfigsStep,
    DetectConflictsStep,
    EnableServicesStep,
    InstallPackagesStep,
    ResolveComponentsStep,
)

logger = logging.getLogger(__name__)


def build_steps(ctx: ApplyContext):
    return [
        ResolveComponentsStep(ctx),
        DetectConflictsStep(ctx),
        InstallPackagesStep(ctx),
        DeployConfigsStep(ctx),
        EnableServicesStep(ctx),
    ]


def _config_from_args(args: argparse.Namespace) -> Config:
    cfg = load_config(args.config)
    return cfg.with_overrides(
        home=args.home,
        dotfiles_dir=args.dotfiles,
        catalog_path=args.catalog,
        backup_root=args.backup_root,
        log_path=args.log,
        dry_run=True if args.dry_run else None,
    )


def _backups(cfg: Config) -> BackupManager:
    return BackupManager(cfg.backup_root, cfg.home, make_executor(cfg.dry_run))


def _config_count(cfg: Config, name: str) -> Optional[int]:
    try:
        return len(discover(name, component_dir(cfg.dotfiles_dir, name), cfg.home))
    except ComponentDirectoryMissing:
        return None


# Commands


def cmd_list(cfg: Config, catalog: Catalog, args: argparse.Namespace) -> int:
    print("Available components:")
    for comp in catalog:
        count = _config_count(cfg, comp.name)
        files = f"{count} configuration files" if count is not None else "no configuration files"
        category = f" [{comp.category}]" if comp.category else ""
        print(f"  - {comp.name}{category}: {comp.description} ({files})")

    if cfg.dotfiles_dir.is_dir():
        extra = [n for n in discover_components(cfg.dotfiles_dir) if n not in catalog]
        for name in extra:
            logger.warning("Dotfiles component not in catalog: %s", name)
    return 0


def cmd_presets(cfg: Config, catalog: Catalog, args: argparse.Namespace) -> int:
    if not catalog.presets:
        print("No presets defined")
        return 0
    print("Available presets:")
    for preset in catalog.presets.values():
        print(f"  - {preset.name}: {preset.display_name} - {preset.description}")
        print(f"      components: {', '.join(preset.components)}")
    return 0


def cmd_show(cfg: Config, catalog: Catalog, args: argparse.Namespace) -> int:
    comp = catalog.get(args.component)
    print(f"Component: {comp.name} ({comp.display_name})")
    print(f"  Description:  {comp.description}")
    print(f"  Category:     {comp.category or '-'}")
    print(f"  Dependencies: {', '.join(comp.dependencies) or '-'}")
    print(f"  Conflicts:    {', '.join(comp.conflicts) or '-'}")
    if comp.options:
        print(f"  Options:      {', '.join(comp.options)}")
    for distro, pkgs in sorted(comp.packages.items()):
        print(f"  Packages[{distro}]: {' '.join(pkgs) or '-'}")
    if comp.services:
        print(f"  Services:     {', '.join(comp.services)}")

    root = component_dir(cfg.dotfiles_dir, comp.name)
    if not root.is_dir():
        print("No configurations found for this component")
        return 0

    mappings = discover(comp.name, root, cfg.home)
    print("Configuration mappings:")
    for m in mappings:
        rel_source = os.path.relpath(m.source, os.path.abspath(root))
        try:
            rel_target = "~/" + str(m.target.relative_to(cfg.home))
        except ValueError:
            rel_target = str(m.target)
        print(f"  {comp.name}/{rel_source} -> {rel_target} [{inspect_mapping(m).value}]")
    return 0


def _selection(catalog: Catalog, args: argparse.Namespace) -> List[str]:
    selected: List[str] = []
    if args.preset:
        selected.extend(catalog.preset_components(args.preset))
    selected.extend(args.components or [])
    if not selected:
        raise ResolutionError("No components specified for apply action")
    return selected


def cmd_apply(cfg: Config, catalog: Catalog, args: argparse.Namespace) -> int:
    executor = make_executor(cfg.dry_run)
    prompter: Prompter = AutoPrompter(assume_yes=True) if args.yes else ConsolePrompter()
    ctx = ApplyContext(
        catalog=catalog,
        dotfiles_dir=cfg.dotfiles_dir,
        home=cfg.home,
        executor=executor,
        prompter=prompter,
        backups=BackupManager(cfg.backup_root, cfg.home, executor),
        distro=args.distro or cfg.distro,
    )

    state: Dict[str, Any] = ensure_defaults({})
    state["config"].update(
        {
            "dry_run": cfg.dry_run,
            "policy": args.policy or cfg.default_policy,
            "strict": bool(args.strict),
            "install_packages": bool(args.packages),
            "enable_services": bool(args.services),
        }
    )
    state["selection"]["requested"] = _selection(catalog, args)

    try:
        result = run_pipeline(state=state, steps=build_steps(ctx))
        state = result.state
    except Exception as e:
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {"step": (state.get("execution") or {}).get("current_step"), "error": str(e)}
        )
        raise
    finally:
        if not cfg.dry_run:
            try:
                history = load_state(cfg.state_path)
            except ValueError as e:
                logger.warning("Ignoring unreadable state file %s, starting a new one: %s", cfg.state_path, e)
                history = {}
            history.update({k: v for k, v in state.items() if k != "applied"})
            history.setdefault("applied", {}).update(state.get("applied") or {})
            save_state(cfg.state_path, history)

    report = ctx.report
    for comp in report.components:
        if comp.skipped_reason:
            print(f"  {comp.component}: skipped ({comp.skipped_reason})")
        else:
            print(f"  {comp.component}: {comp.successes} ok, {comp.failures} failed")
    session = ctx.backups.session
    if session is not None:
        print(f"Backups saved in session {session.id}: {session.directory}")
    print(f"Total: {report.successes} succeeded, {report.failures} failed")
    return 0 if report.ok else 1


def cmd_remove(cfg: Config, catalog: Catalog, args: argparse.Namespace) -> int:
    name = args.component
    mappings = discover(name, component_dir(cfg.dotfiles_dir, name), cfg.home)
    executor = make_executor(cfg.dry_run)
    report = SymlinkDeployer(executor).remove_links(name, mappings)
    print(f"{name}: {report.count(Outcome.REMOVED)} removed, {report.failures} failed")

    if args.services:
        for service in catalog.get(name).services:
            try:
                disable_service(executor, service)
            except CommandFailed as e:
                logger.warning("Non-fatal: failed to disable %s: %s", service, e)
    return 0 if report.ok else 1


def cmd_validate(cfg: Config, catalog: Catalog, args: argparse.Namespace) -> int:
    report = validate_catalog(catalog)

    if cfg.dotfiles_dir.is_dir():
        for name in discover_components(cfg.dotfiles_dir):
            count = _config_count(cfg, name) or 0
            if count == 0:
                report.warnings.append(f"Component has no configuration files: {name}")
                logger.warning("Component has no configuration files: %s", name)
            else:
                logger.info("Component %s: %d configuration files", name, count)
    else:
        report.warnings.append(f"Dotfiles directory not found: {cfg.dotfiles_dir}")
        logger.warning("Dotfiles directory not found: %s", cfg.dotfiles_dir)

    print(f"Validation: {len(report.errors)} error(s), {len(report.warnings)} warning(s)")
    for msg in report.errors:
        print(f"  ERROR   {msg}")
    for msg in report.warnings:
        print(f"  WARNING {msg}")
    return 0 if report.ok else 1


def cmd_backup_list(cfg: Config, catalog: Optional[Catalog], args: argparse.Namespace) -> int:
    sessions = _backups(cfg).list_sessions()
    if not sessions:
        print("No backup sessions found")
        return 0
    for s in sessions:
        created = f" created {s.created_at}" if s.created_at else ""
        by = f" by {s.created_by}" if s.created_by else ""
        print(f"  {s.id}{created}{by} ({len(s.entries)} entries) {s.directory}")
    return 0


def cmd_restore(cfg: Config, catalog: Optional[Catalog], args: argparse.Namespace) -> int:
    if args.path:
        scope = RestoreScope.path(args.path)
    elif args.origin:
        scope = RestoreScope.origin(args.origin)
    elif args.component:
        scope = RestoreScope.component(args.component)
    else:
        scope = RestoreScope.all()

    report = _backups(cfg).restore_session(args.session, scope, policy=RestorePolicy(args.policy))
    for r in report.results:
        line = f"  {r.outcome.value:9} {r.entry.original}"
        print(line + (f" ({r.error})" if r.error else ""))
    kept = report.pre_restore_session
    if kept is not None:
        print(f"Replaced files saved in session {kept.id}: {kept.directory}")
    return 0 if report.ok else 1


# Commands that do not need the catalog.
_NO_CATALOG = {"backup-list", "restore"}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dotstrap", description="Workstation component and dotfiles manager")
    p.add_argument("--config", default=None, help="YAML config file")
    p.add_argument("--catalog", default=None, help="Component catalog (json|yaml)")
    p.add_argument("--dotfiles", default=None, help="Dotfiles directory (one subdirectory per component)")
    p.add_argument("--home", default=None, help="Home directory to deploy into")
    p.add_argument("--backup-root", default=None, help="Directory holding backup sessions")
    p.add_argument("--log", default=None, help="Path to log file")
    p.add_argument("--dry-run", action="store_true", help="Report changes without making them")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List all available components")
    sub.add_parser("presets", help="List component presets")

    sp = sub.add_parser("show", help="Show details for a specific component")
    sp.add_argument("component")

    sp = sub.add_parser("apply", help="Apply configurations for one or more components")
    sp.add_argument("components", nargs="*")
    sp.add_argument("--preset", default=None, help="Start from a preset's components")
    sp.add_argument("--policy", choices=POLICIES, default=None, help="What to do with existing files")
    sp.add_argument("--strict", action="store_true", help="Stop at the first failed link")
    sp.add_argument("--packages", action="store_true", help="Install the components' packages")
    sp.add_argument("--services", action="store_true", help="Enable the components' services")
    sp.add_argument("--distro", default=None, help="Distribution id for package lists")
    sp.add_argument("-y", "--yes", action="store_true", help="Answer prompts non-interactively")

    sp = sub.add_parser("remove", help="Remove configurations for a component")
    sp.add_argument("component")
    sp.add_argument("--services", action="store_true", help="Also disable the component's services")

    sub.add_parser("validate", help="Validate catalog and dotfiles structure")
    sub.add_parser("backup-list", help="List all backup sessions")

    sp = sub.add_parser("restore", help="Restore from backup session")
    sp.add_argument("session")
    sp.add_argument("path", nargs="?", default=None)
    sp.add_argument("--policy", choices=[p.value for p in RestorePolicy], default="replace")
    group = sp.add_mutually_exclusive_group()
    group.add_argument("--origin", choices=["home", "root"], default=None)
    group.add_argument("--component", default=None)
    return p


COMMANDS = {
    "list": cmd_list,
    "presets": cmd_presets,
    "show": cmd_show,
    "apply": cmd_apply,
    "remove": cmd_remove,
    "validate": cmd_validate,
    "backup-list": cmd_backup_list,
    "restore": cmd_restore,
}


def run(args: argparse.Namespace) -> int:
    cfg = _config_from_args(args)
    configure_logging(log_path=str(cfg.log_path), verbose=args.verbose)
    if cfg.dry_run:
        logger.info("Dry run: no changes will be made")

    catalog = None if args.command in _NO_CATALOG else load_catalog(cfg.catalog_path)
    return COMMANDS[args.command](cfg, catalog, args)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except DotstrapError as e:
        logger.error("%s", e)
        return 1
    except Exception:
        logger.exception("dotstrap failed")
        raise


if __name__ == "__main__":
    raise SystemExit(main())
