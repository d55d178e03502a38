"""Approval rules, their "and"/"or" combinations and policy parsing."""