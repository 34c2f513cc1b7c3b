"""CLI commands; registered on the application in ``commonmeta.cli.main``."""

from commonmeta.cli.commands.identifiers import decode_command, encode_command
from commonmeta.cli.commands.metadata import convert_command, list_command
from commonmeta.cli.commands.misc import update_ghost_post_command, version_command
from commonmeta.cli.commands.registration import (
    delete_command,
    post_command,
    push_command,
    put_command,
    setup_command,
)
from commonmeta.cli.commands.vocabulary import (
    import_command,
    install_command,
    match_command,
    obtain_command,
    transform_command,
)

__all__ = [
    "convert_command",
    "decode_command",
    "delete_command",
    "encode_command",
    "import_command",
    "install_command",
    "list_command",
    "match_command",
    "obtain_command",
    "post_command",
    "push_command",
    "put_command",
    "setup_command",
    "transform_command",
    "update_ghost_post_command",
    "version_command",
]
