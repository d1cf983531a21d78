from qfaf.simulation.sizing import size_strategy, validate_profile
from qfaf.simulation.summary import summarize
from qfaf.simulation.engine import (
    ProjectionContext, build_context, simulate_year, run_projection,
    projection_years, project
)
from qfaf.simulation.overrides import (
    project_with_overrides, index_overrides, resized_qfaf_value, restate_sizing
)
from qfaf.simulation.sensitivity import project_with_sensitivity, sensitivity_settings
