"""NCHU iLearning login and dashboard automation."""
