"""Formal engine invariants.

This file documents what each component MUST guarantee. This is architecture,
not code. Use this file as a reviewer anchor and system reference.
"""

ENGINE_INVARIANTS = {
    "grid": [
        "Cell size is positive and uniform in X and Y",
        "Extent width and height are integer multiples of the cell size",
        "Row 0 is the northern row (Y descending with row index)",
        "Constant grids have no extent, no cell size and no no-data holes",
    ],

    "upscaler": [
        "A missing source yields a missing result, never synthesized data",
        "Requests at or below the source resolution return the source object itself",
        "No-data never contributes to Minimum, Maximum or Mean",
        "A target cell without valid source cells is no-data",
        "Results are cached per (cell size, extent) until release",
    ],

    "iterator": [
        "Cells are visited row-major: Y descending, then X ascending",
        "Only cells inside the intersection of all spatial grids are visited",
        "Grids are queried by world coordinate, never by shared index",
        "An intersection smaller than one cell visits zero cells",
    ],

    "result_layer": [
        "Cells are uint32 bitmasks, zero means no finding",
        "Codes within one catalog are distinct powers of two (at most 31)",
        "Adding the same finding twice to a cell is a no-op",
        "A layer without findings is never written nor registered",
        "Legend classes <= declared findings + 1",
    ],

    "engine": [
        "Units outside the caller's entry/period bounds are never evaluated",
        "A grid combination is evaluated at most once per check run",
        "Unexpected failures surface as CheckFailure carrying the check name",
        "One check failing does not stop the other checks",
    ],
}
