from .rules import RuleValidator, Validator, parse_rules

__all__ = ["RuleValidator", "Validator", "parse_rules"]
