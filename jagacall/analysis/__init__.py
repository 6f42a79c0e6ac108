# jagacall/analysis/__init__.py

from .schema import FIELD_DEFAULTS, SCHEMAS, UNPARSEABLE_FLAG, AnalysisKind
