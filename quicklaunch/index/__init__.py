"""Index subsystem - discovers launchable entries and watches for changes.

Components:
- IndexBuilder: Runs discovery jobs in parallel and builds the option set
- DirectorySources: Directory walkers for .exe files, .app bundles and .desktop files
- WindowsSources: Uninstall registry keys and Start Menu shortcuts
- PathFilter: Include/exclude glob rules for index roots
- IconResolver: Loads icons with Pillow
- IndexWatcher: watchdog observer that requests a rebuild on changes
"""
