"""gridval User Configuration.

This is the user-facing configuration file. Modify settings here to point
at your model and choose what to check. Expert defaults (check thresholds,
margins, output settings) live in gridval.schemas.param and
gridval.schemas.checks and can be overridden under CHECK_SETTINGS.

Usage:
    python scripts/run_validation.py scripts/user_config.py
    python scripts/run_validation.py scripts/user_config.py --checks OLF
    python scripts/run_validation.py scripts/user_config.py --max-period 1
"""

CONFIG = {
    # ========================================================================
    # OUTPUT
    # ========================================================================
    "BASE_DIR": "./gridval_output",   # Results, plots and logs go here

    # ========================================================================
    # RUN BOUNDS (1-based, inclusive)
    # ========================================================================
    "MIN_LAYER": 1,
    "MAX_LAYER": 999,
    "MIN_PERIOD": 1,
    "MAX_PERIOD": 999,
    "EXTENT": None,             # (xmin, ymin, xmax, ymax) or None for all
    "CHECKS": None,             # e.g. ["ANI", "DRN"], None for all

    # ========================================================================
    # CHECK SETTINGS
    # ========================================================================
    # Limits are numbers or grid files; None disables the comparison.
    "CHECK_SETTINGS": {
        "ani": {
            "min_factor": 0.1,
            "max_factor": 1.0,
        },
        "olf": {
            "distance_below_surface": 0.5,
            "use_drn_level_as_olf": False,
        },
        "drn": {
            "min_conductance": 0,
            "max_conductance": 10000,
        },
    },

    # ========================================================================
    # MODEL
    # ========================================================================
    # Grid paths are relative to "root". Periods reuse the closest earlier
    # definition, so period 1 is enough for a steady-state model.
    "MODEL": {
        "root": "model",
        "period_count": 1,
        "surface_level": "surface_level.nc",
        "datasets": {
            "ANI": {
                "periods": {
                    1: [
                        {"factor": "ani/factor_l1.nc", "angle": "ani/angle_l1.nc"},
                        {"factor": 1.0, "angle": 0.0},
                    ],
                },
            },
            "OLF": {
                "periods": {1: [{"level": "olf/olf_level.nc"}]},
            },
            "DRN": {
                "periods": {
                    1: [
                        {"conductance": "drn/cond_s1.nc", "level": "drn/level_s1.nc"},
                    ],
                },
            },
        },
    },
}
