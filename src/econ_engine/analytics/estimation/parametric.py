"""
Parametric Effort Model
=======================
COCOMO-style effort, schedule and cost from project size (KLOC).

Formula:
    effort   = a * KLOC^b          (person-months)
    schedule = c * effort^d        (months)
    team     = effort / schedule
    cost     = effort * cost_per_person_month
"""

from typing import Optional, Union

from econ_engine.config.constants import DEFAULT_CONFIG, EngineConfig
from econ_engine.models.inputs import ProjectProfile, ProjectType, SizeEstimate
from econ_engine.models.results import ParametricEstimate
from econ_engine.utils.exceptions import InvalidInputError


def parametric_effort(
    kloc: Union[float, SizeEstimate],
    project_type: Union[str, ProjectType] = ProjectType.ORGANIC,
    team_size: Optional[int] = None,
    config: Optional[EngineConfig] = None,
) -> ParametricEstimate:
    """
    Stima effort, durata e costo con il modello parametrico.

    Args:
        kloc: Size in thousands of lines of code (> 0), or a SizeEstimate
        project_type: organic | semidetached | embedded
        team_size: Planned team size (optional, echoed with staffing ratio)
        config: Engine configuration (DEFAULT_CONFIG if None)

    Returns:
        ParametricEstimate

    Raises:
        InvalidInputError: kloc <= 0, unknown project type, team_size < 1
    """
    cfg = (config or DEFAULT_CONFIG).estimation
    size = kloc if isinstance(kloc, SizeEstimate) else SizeEstimate(kloc)
    profile = ProjectProfile(project_type=project_type, team_size=team_size)

    constants = cfg.parametric_constants.get(profile.project_type)
    if constants is None:
        raise InvalidInputError(
            "No parametric constants configured for project type",
            field="project_type",
            value=profile.project_type.value,
        )

    size_kloc = size.source_size_kloc
    effort = constants.a * size_kloc ** constants.b
    schedule = constants.c * effort ** constants.d
    average_team_size = effort / schedule

    staffing_ratio = None
    if profile.team_size is not None:
        staffing_ratio = profile.team_size / average_team_size

    return ParametricEstimate(
        project_type=profile.project_type,
        kloc=size_kloc,
        effort=effort,
        schedule=schedule,
        average_team_size=average_team_size,
        cost=effort * cfg.cost_per_person_month,
        productivity=size_kloc / effort,
        cost_per_person_month=cfg.cost_per_person_month,
        team_size=profile.team_size,
        staffing_ratio=staffing_ratio,
    )
