# Module for publishing a mirrored snapshot folder with the Vercel CLI

import json
import logging
import os
import subprocess

import constants
from api_clients.errors import DeployError


def ensure_vercel_logged_in(runner=subprocess.run):
    """Returns the logged-in Vercel user name, or raises DeployError."""
    try:
        result = runner([constants.VERCEL_COMMAND, 'whoami'],
                        stdin=subprocess.DEVNULL, capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        raise DeployError(
            "You are not logged into Vercel. Please run `vercel login` first, then re-run with --deploy."
        ) from e
    return result.stdout.strip()


def ensure_vercel_json(deploy_dir):
    """Writes a default vercel.json into `deploy_dir` unless one already exists."""
    vercel_json_path = os.path.join(deploy_dir, constants.VERCEL_CONFIG_FILENAME)
    if os.path.exists(vercel_json_path):
        return False
    with open(vercel_json_path, 'w', encoding='utf-8') as f:
        json.dump(constants.VERCEL_DEFAULT_CONFIG, f, indent=2)
    logging.info(f"Created {vercel_json_path}")
    return True


def list_timestamp_folders(output_dir):
    """Sorted names of the snapshot folders under `output_dir` (empty if it is missing)."""
    try:
        entries = os.scandir(output_dir)
    except FileNotFoundError:
        return []
    with entries:
        return sorted(entry.name for entry in entries if entry.is_dir())


def select_timestamp_folder(output_dir, preselected=None, chooser=None):
    """
    Picks the snapshot folder to deploy.

    `preselected` must name an existing folder. Without it, `chooser` is
    called with the sorted folder names and must return one of them.
    """
    folders = list_timestamp_folders(output_dir)
    if not folders:
        raise DeployError(f"No snapshots found under {output_dir}")

    if preselected:
        if preselected not in folders:
            raise DeployError(f"Timestamp '{preselected}' not found under {output_dir}")
        return preselected

    selected = chooser(folders) if chooser else None
    if not selected:
        raise DeployError("No selection made.")
    if selected not in folders:
        raise DeployError(f"Timestamp '{selected}' not found under {output_dir}")
    return selected


def build_vercel_args(deploy_dir, name=None, prod=False):
    args = ['deploy', deploy_dir, '--yes']
    if name:
        args.extend(['--name', name])
    if prod:
        args.append('--prod')
    return args


def deploy_with_vercel(output_dir, select=None, name=None, prod=False, chooser=None, runner=subprocess.run):
    """Deploys one mirrored snapshot folder. Returns the deployed directory."""
    user = ensure_vercel_logged_in(runner=runner)
    logging.info(f"Vercel logged in as {user}")

    selected_ts = select_timestamp_folder(output_dir, preselected=select, chooser=chooser)
    deploy_dir = os.path.join(output_dir, selected_ts)
    logging.info(f"Deploying folder: {deploy_dir}")

    ensure_vercel_json(deploy_dir)

    args = build_vercel_args(deploy_dir, name=name, prod=prod)
    try:
        runner([constants.VERCEL_COMMAND] + args, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        raise DeployError(f"Vercel deployment failed: {e}") from e
    logging.info("Deployment complete")
    return deploy_dir
