"""chaintodo Core -- 链上任务镜像的领域模型、存储与对账"""
