# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Runtime settings, read from T2K_* environment variables and the nearest .env file.
"""
import os
from typing import Dict, Mapping, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict

ENV_PREFIX = "T2K_"


class Settings(BaseModel):
    """
    Defaults used by the parsers, the compiler and the CLI.
    """
    model_config = ConfigDict(extra='ignore')

    default_namespace: Optional[str] = None
    strict_interpolation: bool = False
    topology_file: str = "topology.yml"
    output_dir: str = "dist"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Builds settings from prefixed environment variables.

        :param environ: Mapping to read from, defaults to os.environ.
        :return: The settings; unset variables keep their defaults.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, str] = {}
        for field in cls.model_fields:
            raw = environ.get(ENV_PREFIX + field.upper())
            if raw not in (None, ''):
                values[field] = raw
        return cls.model_validate(values)


_settings: Optional[Settings] = None


def get_settings(reload: bool = False) -> Settings:
    """
    Returns the process-wide settings, loading the .env file on first use.
    """
    global _settings
    if _settings is None or reload:
        load_dotenv(find_dotenv(usecwd=True), override=False)
        _settings = Settings.from_env()
    return _settings
