from ..settings import Settings
from .bruteforce import BruteForceSearcher, MatchRule
from .external import ExternalEngine, parse_output

def build_engine(cfg: Settings, name: str | None = None) -> ExternalEngine | BruteForceSearcher:
    name = name or cfg.engine
    if name == "bruteforce":
        return BruteForceSearcher(num_workers=cfg.num_workers)
    if name == "external":
        return ExternalEngine(engine_dir=cfg.engine_dir, quit_count=cfg.quit_count)
    raise ValueError(f"unknown engine: {name}")

__all__ = ["BruteForceSearcher", "ExternalEngine", "MatchRule", "build_engine", "parse_output"]
