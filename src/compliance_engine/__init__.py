"""
Compliance Scoring & Prioritization Engine

Traffic-light status, store priority, audit scores and the zone risk radar
for retail units in a managed property.
"""
