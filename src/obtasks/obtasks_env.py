from pathlib import Path
import os
import tomllib
from pydantic import BaseModel, Field, ValidationError
from typing import Optional
from jinja2 import Template
from rich.console import Console

NOTES_DIR_VAR = "OBSIDIAN_NOTES_DIR"
HOME_VAR = "OBTASKS_HOME"

_err = Console(stderr=True, highlight=False)


# ─── Config Schema ─────────────────────────────────────────────────
class ScanConfig(BaseModel):
    workers: int = Field(4, ge=1, le=64)
    skip_hidden: bool = True


class DisplayConfig(BaseModel):
    hyperlinks: bool = True
    show_inactive: bool = True


class ObtasksConfig(BaseModel):
    title: str = "Obsidian Tasks Configuration"
    notes_dir: str = ""
    scan: ScanConfig = ScanConfig()
    display: DisplayConfig = DisplayConfig()


# ─── Commented Template ────────────────────────────────────
CONFIG_TEMPLATE = """\
title = {{ title | tojson }}

# notes_dir: str = path to the folder of notes to scan.
# $OBSIDIAN_NOTES_DIR and the --notes-dir option take precedence.
notes_dir = {{ notes_dir | tojson }}

[scan]
# workers: int = number of notes evaluated concurrently (1 = one at a time)
workers = {{ scan.workers }}

# skip_hidden: bool = true | false
# skip directories such as .obsidian and .trash while scanning
skip_hidden = {{ scan.skip_hidden | lower }}

[display]
# hyperlinks: bool = true | false
# render task names as obsidian:// links when a vault is detected
hyperlinks = {{ display.hyperlinks | lower }}

# show_inactive: bool = true | false
show_inactive = {{ display.show_inactive | lower }}

"""

# ─── Save Config with Comments ───────────────────────────────


def render_config(config: ObtasksConfig) -> str:
    template = Template(CONFIG_TEMPLATE)
    return template.render(**config.model_dump()).strip() + "\n"


def save_config_from_template(config: ObtasksConfig, path: Path):
    path.write_text(render_config(config), encoding="utf-8")
    _err.print(f"✅ Config with comments written to: {path}")


# ─── Main Environment Class ───────────────────────────────


class ObtasksEnvironment:
    def __init__(self):
        self._home = self._resolve_home()
        self._config: Optional[ObtasksConfig] = None

    @property
    def home(self) -> Path:
        return self._home

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    @property
    def log_dir(self) -> Path:
        return self.home / "logs"

    def load_config(self) -> ObtasksConfig:
        # Step 1: Create the file if it doesn't exist
        if not self.config_path.exists():
            self.home.mkdir(parents=True, exist_ok=True)
            config = ObtasksConfig()
            save_config_from_template(config, self.config_path)
            self._config = config
            return config

        # Step 2: Try to load and validate the config
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
            config = ObtasksConfig.model_validate(data)
        except (ValidationError, tomllib.TOMLDecodeError) as e:
            _err.print(f"⚠️ Config error in {self.config_path}: {e}\nUsing defaults.")
            self._config = ObtasksConfig()
            return self._config

        # Step 3: Regenerate the canonical version so new keys show up
        rendered = render_config(config)
        current_text = self.config_path.read_text(encoding="utf-8")
        if rendered != current_text:
            self.config_path.write_text(rendered, encoding="utf-8")
            _err.print(f"✅ Updated {self.config_path} with any missing defaults.")

        self._config = config
        return config

    @property
    def config(self) -> ObtasksConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def notes_dir(self, override: Optional[str] = None) -> Optional[Path]:
        """
        Return the notes directory to scan, or None when nothing is configured.

        Order: explicit override, $OBSIDIAN_NOTES_DIR, notes_dir in config.toml.
        """
        if override:
            return Path(override).expanduser()
        from_env = os.getenv(NOTES_DIR_VAR)
        if from_env:
            return Path(from_env).expanduser()
        configured = self.config.notes_dir.strip()
        if configured:
            return Path(configured).expanduser()
        return None

    def _resolve_home(self) -> Path:
        cwd = Path.cwd()
        if (cwd / "config.toml").exists():
            return cwd

        env_home = os.getenv(HOME_VAR)
        if env_home:
            return Path(env_home).expanduser()

        xdg_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_home:
            return Path(xdg_home).expanduser() / "obsidian-tasks"
        else:
            return Path.home() / ".config" / "obsidian-tasks"
