#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List, Optional

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fasting_app.config.loader import ConfigLoader
from fasting_app.config.validation import ConfigValidator, ValidationError
from fasting_app.data.plans import PlanCatalog
from fasting_app.data.timeline import TimelineProvider
from fasting_app.errors import DataQualityError


def validate_merged_config(overrides: Optional[dict] = None) -> List[ValidationError]:
    """Validate defaults + fasting.yaml (+ overrides)."""
    loader = ConfigLoader.create()
    config = loader.merge_config(overrides)
    return ConfigValidator.validate_config(config)


def main():
    """Main validation function."""
    print("🔍 Validating fasting engine configuration...")

    loader = ConfigLoader.create()
    print(f"📁 Config directory: {loader.config_dir}")

    all_valid = True

    try:
        errors = validate_merged_config()

        if errors:
            print(f"❌ Found {len(errors)} validation errors:")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            print("✅ Merged configuration is valid")

    except DataQualityError as e:
        print(f"❌ Error loading configuration: {e}")
        all_valid = False

    # Plans and timeline are normalized separately from parameter validation
    print("\n📋 Checking plan catalog and timeline...")
    try:
        config = loader.merge_config()
        catalog = PlanCatalog.from_config(config)
        timeline = TimelineProvider.from_config(config)
        print(f"✅ {len(catalog)} plans, {len(timeline.entries)} timeline stages")
    except DataQualityError as e:
        print(f"❌ Invalid plans or timeline: {e}")
        all_valid = False

    # Explicit overrides on top of the file
    print("\n🔧 Testing explicit overrides...")
    test_overrides = {
        "notifications": {
            "quiet_hours_enabled": True,
            "quiet_hours_start": 23,
            "quiet_hours_end": 6,
        }
    }

    try:
        errors = validate_merged_config(test_overrides)

        if errors:
            print("❌ Override validation failed:")
            for error in errors:
                print(f"  • {error.field}: {error.message}")
            all_valid = False
        else:
            print("✅ Override validation passed")

    except DataQualityError as e:
        print(f"❌ Error testing overrides: {e}")
        all_valid = False

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
