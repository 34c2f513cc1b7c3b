"""Command line interface: ``commonmeta <global options> <command> <input>``."""
