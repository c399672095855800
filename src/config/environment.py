"""Application-root resolution for relative library, asset and database paths."""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppEnvironment:
    """
    Anchors relative paths at the application's install/content directory.

    Attributes:
        application_root: Absolute directory every relative path is resolved against.
        configuration_root: Folder holding the library configuration file.
        assets_root: Folder used for songs whose root is no longer configured.
        environment_name: Name of the running environment (development, test, production).
    """

    application_root: Path
    configuration_root: str = "config"
    assets_root: str = "assets"
    environment_name: str = "development"

    def __post_init__(self):
        """Ensure the application root is an absolute Path."""
        object.__setattr__(
            self, "application_root", Path(os.path.abspath(self.application_root))
        )

    @classmethod
    def from_config(cls, config_cls) -> "AppEnvironment":
        """
        Builds an environment from one of the configuration classes in ``config.config``.

        Args:
            config_cls: BaseConfig or one of its subclasses.

        Returns:
            AppEnvironment: Environment anchored at ``config_cls.APP_ROOT``.
        """
        return cls(
            application_root=Path(config_cls.APP_ROOT),
            configuration_root=str(config_cls.CONFIG_ROOT),
            assets_root=str(config_cls.ASSETS_ROOT),
            environment_name=config_cls.APP_ENV,
        )

    def resolve(self, path: str | Path | None) -> Path:
        """
        Returns ``path`` as an absolute, normalized path.

        Absolute paths are returned normalized; relative paths are joined onto the
        application root. An empty path resolves to the application root itself.

        Args:
            path: Absolute or application-relative path.

        Returns:
            Path: The absolute path.
        """
        if path is None or not str(path).strip():
            return self.application_root
        if os.path.isabs(path):
            return Path(os.path.normpath(path))
        return Path(os.path.normpath(os.path.join(self.application_root, path)))

    @property
    def configuration_root_path(self) -> Path:
        return self.resolve(self.configuration_root)

    @property
    def assets_root_path(self) -> Path:
        return self.resolve(self.assets_root)
