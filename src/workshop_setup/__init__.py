"""Bootstrap a workshop environment from its CloudFormation stack"""
