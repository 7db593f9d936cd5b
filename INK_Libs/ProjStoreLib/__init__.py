"""
ProjStoreLib - Project state and storage

This module holds the editable InkProject, handles persistence of
projects as .inkproj files, and stores user preferences.
"""

from INK_Libs.ProjStoreLib.ink_project import InkProject, regenerate
from INK_Libs.ProjStoreLib.project_store import (
    create_project_file,
    get_projects_dir,
    list_project_files,
    load_project,
    load_project_name,
    project_from_record,
    project_to_record,
    save_project,
)
from INK_Libs.ProjStoreLib.preferences import Preferences, load_preferences, save_preferences

__all__ = [
    "InkProject",
    "regenerate",
    "create_project_file",
    "get_projects_dir",
    "list_project_files",
    "load_project",
    "load_project_name",
    "project_from_record",
    "project_to_record",
    "save_project",
    "Preferences",
    "load_preferences",
    "save_preferences",
]
