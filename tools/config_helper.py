#!/usr/bin/env python3
"""
Session Config Helper Tool

Helps exam operators create and validate session configuration files.
"""

import json
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from proctor.config_loader import config_from_dict, create_sample_config
from proctor.errors import ConfigError


def validate_config_file(config_path: Path) -> bool:
    """Validate an existing configuration file."""
    print("=" * 60)
    print("CONFIG VALIDATOR")
    print("=" * 60)
    print(f"\nValidating: {config_path}\n")

    if not config_path.exists():
        print(f"Error: File '{config_path}' not found.")
        return False

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        config = config_from_dict(data)
    except json.JSONDecodeError as e:
        print(f"✗ Invalid JSON: {e}")
        return False
    except ConfigError as e:
        print("✗ Configuration is INVALID!")
        print(f"  Error: {e}")
        return False

    print("Configuration:")
    print(f"  Violation limit: {config.violation_limit}")
    print(f"  Tick: {config.tick_seconds}s")
    print(f"  Resume clock policy: {config.resume_clock_policy}")
    grace = config.coding_grace_seconds
    print(f"  Coding grace: {f'{grace}s' if grace else 'none (coding unclocked after a forced jump)'}")
    print(f"  Checkpoints: {config.checkpoint_dir} "
          f"({'encrypted' if config.encrypt_checkpoints else 'plaintext'}, "
          f"{'autosave' if config.autosave else 'save on exit'})")
    print(f"  Fullscreen: {'required' if config.require_fullscreen else 'off'}")
    monitoring = config.network_monitoring
    if monitoring.enabled:
        print(f"  Network monitoring: every {monitoring.check_interval_seconds}s")
    else:
        print("  Network monitoring: off")
    print()
    print("✓ Configuration is VALID!")
    return True


def main():
    """Main entry point."""
    print("\n" + "=" * 60)
    print("SESSION CONFIGURATION HELPER TOOL")
    print("=" * 60)
    print("\nOptions:")
    print("  1. Write a sample configuration")
    print("  2. Validate existing configuration")
    print("  3. Exit")
    print()

    try:
        choice = input("Enter your choice (1-3): ").strip()

        if choice == '1':
            save_path = Path.cwd() / "config.json"
            if save_path.exists():
                overwrite = input("config.json exists. Overwrite? (y/n): ").strip().lower()
                if overwrite != 'y':
                    print("Cancelled.")
                    return 0
            create_sample_config(save_path)
            print(f"\n✓ Sample configuration saved to: {save_path}")
            print()
            validate_config_file(save_path)

        elif choice == '2':
            print()
            config_file = input("Enter config file path (default: config.json): ").strip()
            if not config_file:
                config_file = "config.json"
            return 0 if validate_config_file(Path(config_file)) else 1

        elif choice == '3':
            print("Goodbye!")
            return 0

        else:
            print("Invalid choice.")
            return 1

    except (KeyboardInterrupt, EOFError):
        print("\n\nExiting.")
        return 0
    except OSError as e:
        print(f"\nCould not write configuration: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
