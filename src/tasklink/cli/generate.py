"""Generate command for creating default config."""

import logging
from pathlib import Path

import yaml

from ..models.tasklink_config import TasklinkConfig
from ..services.config_service import ConfigService
from .output import info, success

logger = logging.getLogger(__name__)

CONFIG_HEADER = """\
# tasklink configuration
#
# task_root: Relative path to directory containing task files
#
# sync.github:
#   enabled: Sync root tasks to GitHub Issues on 'tasklink sync'
#   owner/repo: Target repository (inferred from the 'origin' remote when empty)
#   base_url: API host; set to your GitHub Enterprise host if needed
#   token_env: Environment variable holding the token ('gh auth token' is the fallback)
#   label_prefix: Managed label; issues also get PREFIX:priority-N and PREFIX:<status>
#
# sync.shortcut:
#   enabled: Sync tasks to Shortcut Stories on 'tasklink sync'
#   team: Team mention name or UUID (required)
#   workspace: Workspace slug (fetched from the API when empty)
#   workflow: Workflow id (team default workflow when empty)
#   token_env: Environment variable holding the API token
#   label: Managed label added to every story

"""


def generate_config_yaml(task_root: str = ".tasks") -> str:
    """Generate YAML config from the default TasklinkConfig model.

    Uses TasklinkConfig.default() as the single source of truth,
    ensuring generated config always matches internal defaults.
    """
    config_dict = TasklinkConfig.default().model_dump()
    config_dict["task_root"] = task_root
    yaml_content = yaml.dump(config_dict, default_flow_style=False, sort_keys=False)
    return CONFIG_HEADER + yaml_content


def run_generate(project_root: Path) -> int:
    """
    Generate default configuration and task directory.

    Returns:
        Exit code (0 = something created, 1 = nothing to do)
    """
    created = False
    config_path = project_root / ConfigService.CONFIG_FILE

    if config_path.exists():
        info(f"Config exists: {config_path}")
    else:
        project_root.mkdir(parents=True, exist_ok=True)
        config_path.write_text(generate_config_yaml())
        success(f"Generated config: {config_path}")
        created = True

    task_dir = ConfigService(project_root).task_root
    if task_dir.exists():
        info(f"Directory exists: {task_dir}/")
    else:
        task_dir.mkdir(parents=True)
        success(f"Created directory: {task_dir}/")
        created = True

    return 0 if created else 1
