"""
filestore-migrator CLI - Command-line interface for moving stored files.

Usage:
    filestore-migrator migrate --source-type GridFS --destination-type AmazonS3 \
        -d bucket=rocketchat-uploads --store Uploads
    filestore-migrator download --config migrate.yaml --staging-dir /data/staging
    filestore-migrator upload --config migrate.yaml --source-kind GridFS

This creates the 'filestore-migrator' command via entry point in pyproject.toml.
"""


def main():
    """Main entry point for the filestore-migrator CLI."""
    from filestore_migrator.cli.app import cli

    cli()


if __name__ == "__main__":
    main()
