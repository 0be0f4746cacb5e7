"""
TrustMap

Learns how much supervision AI-assisted coding tasks need from the transcripts
of past sessions, and predicts it for tasks that have not run yet.

Philosophy:
- Steering is the ground truth: every user message after the first prompt is an intervention
- Outcomes come from what actually happened (commits, pushes, ticket state), not from claims
- Pure core: no I/O, identical input always gives identical scores

Usage:
    from trustmap.common import load_config
    from trustmap.parser import build_session_from_content
    from trustmap.analysis import analyze_sessions_trust, build_trust_map, predict_trust
"""

__version__ = "0.1.0"
